"""CLI tools for presta.

- ``presta build PAGES``: flush pages through the load engine and write HTML.
- ``presta cache dump|clear``: inspect or reset the durable load cache.

Heavy imports are deferred inside the subcommands to keep ``--help`` fast.
"""
