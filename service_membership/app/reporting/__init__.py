"""
Reporting package.

Counts and filters protected content listed by a content provider.
"""
