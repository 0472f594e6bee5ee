"""
Input/output for source slabs and tile destinations.
"""

from .reader import decompress_slab, read_source
from .sink import SendOutcome, Sink, create_session, HTTPSink, ZarrSink

__all__ = [
    'decompress_slab',
    'read_source',
    'SendOutcome',
    'Sink',
    'create_session',
    'HTTPSink',
    'ZarrSink'
]
