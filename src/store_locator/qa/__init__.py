"""Review list of suspicious sheet rows.

Example:
    >>> from store_locator import DataPaths
    >>> from store_locator.qa import run_review_export
    >>>
    >>> items = run_review_export(DataPaths.from_root("data"))
    >>> for item in items:
    ...     print(item.sheet_row, item.issue)

"""

from store_locator.qa.review import ReviewItem, build_review_list, run_review_export

__all__ = ["ReviewItem", "build_review_list", "run_review_export"]
