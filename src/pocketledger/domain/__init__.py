"""Domain layer for pocketledger.

The pure ledger core lives in ``entities``, ``ledger``, ``balance``,
``expansion``, ``ordering`` and the planners of ``reconciliation``. The
``*Service`` classes wrap it with reads and atomic writes against a
document store.
"""
