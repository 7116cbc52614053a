"""
Recurring obligation services.

Import from the submodules directly (e.g. ``ledgerflow.services.occurrences``);
the schemas depend on the calendar helpers, so nothing is re-exported here.
"""
