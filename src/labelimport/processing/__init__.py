"""
Slab-by-slab import driver.
"""

from .pipeline import (
    ImportAborted,
    send_tile,
    process_slab,
    import_volume,
    coverage_report
)

__all__ = [
    'ImportAborted',
    'send_tile',
    'process_slab',
    'import_volume',
    'coverage_report'
]
