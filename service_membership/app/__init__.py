"""
Membership protection service package.

Decides whether members of a membership tier may access a content item,
optionally delayed by a drip release date. It provides:

- app.rules: Rule model, drip scheduling, merging and listing filters.
- app.memberships: Membership model, storage and the cached directory.
- app.reporting: Access summaries over a content provider.

Guidelines:
- Rules are plain in-memory objects owned by their membership.
- State changes are announced through rule events; listeners only observe.
"""
