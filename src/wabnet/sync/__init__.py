"""Live public listing of opportunities."""

from wabnet.sync.listing import ListingSynchronizer, render_text
from wabnet.sync.sources import HttpSource, OpportunitySource, RepositorySource

__all__ = [
    "HttpSource",
    "ListingSynchronizer",
    "OpportunitySource",
    "RepositorySource",
    "render_text",
]
