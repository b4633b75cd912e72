"""
orders_recurring -- Standing order scheduling and materialization.

Maintains recurring order templates that re-materialize into concrete
orders (ledger rows, a carrier export row and optional documents) a
configurable number of days before each computed shipping date, until
paused or cancelled.

Architecture:
    orders_recurring/ is a top-level package built on orders_kernel
    (logging, errors, clock, database) and orders_config (settings).
    Nothing in orders_kernel or orders_config imports from it, except
    the kernel's ``create_tables()`` which registers its models.

    domain/      pure interval arithmetic, window evaluation, DTOs
    models/      SQLAlchemy models
    services/    store, materializer, carriers, master data, scheduler
    orchestrator.py  dependency wiring
"""
