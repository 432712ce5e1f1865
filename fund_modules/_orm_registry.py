"""
Module ORM Registry (``fund_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table before tables are created.  Called by
``fund_kernel.db.engine.create_tables()``.

Architecture position
---------------------
**Modules layer** -- utility.  Imports kernel models and module ORM
modules.  The kernel imports it lazily, inside ``create_tables()`` only.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``fund_modules.*.orm`` module.

    Kernel models must be registered first: module tables reference
    ``accounting_periods``.  Idempotent.
    """
    import fund_kernel.models  # noqa: F401
    import fund_modules.reporting.orm  # noqa: F401
