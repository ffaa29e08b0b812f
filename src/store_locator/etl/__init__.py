"""ETL building blocks: store table I/O, cleaning helpers and the pivot stage.

Data directories:

**Raw** - ``data/a_raw/``
    The point-of-sale export, unchanged.

**Clean** - ``data/b_clean/``
    Pivot output plus the two sheet snapshots (original import and
    current export) the reconciler compares against.

**Processed** - ``data/c_processed/``
    New stores, blocked stores, the review list and ``stores.json``.

Example:
    >>> from store_locator import DataPaths
    >>> from store_locator.etl.pivot import run_pivot
    >>>
    >>> result = run_pivot(DataPaths.from_root("data"))
    >>> print(result.product_counts())

"""
