"""
Memberships package.

Memberships own one rule per rule type and are stored through a
repository. The directory caches the membership list for the rule engine
and must be invalidated when memberships are created or deleted.
"""
