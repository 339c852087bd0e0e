"""
Rules package.

Defines the protection rule and the algorithms built on it: access
evaluation with base-rule inversion, drip release dates, merging a base or
sibling rule into another, and include/exclude derivation for content
listings.

Modules of interest:
- models: Enums and data classes shared by the rule modules.
- period: Date arithmetic and clocks for drip scheduling.
- rule: The Rule itself.
- registry: Rule type registry and factory.
- events: Synchronous rule event notifications.
- filters: Include/exclude derivation for listings.
- query_args: Listing query arguments for the supported dialects.
"""
