"""
webrecon
A crawl-and-classify reconnaissance engine for web-based analytics platforms.

Logs in once (optional), walks a bounded set of pages inside one browser
session, and classifies what each page exposes: data-source references, API
endpoints, market coverage and methodology links.

CLI Usage:
    python -m webrecon [url] [options]

    Options:
        --pages          Maximum pages to visit (default: 20)
        --wait           Settle delay in ms (default: 5000)
        --login-url      Login page URL
        --username       Login username
        --password       Login password
        --input          JSON input object
        --storage-dir    Output directory (default: ./storage)
        --output-docx    Export the report to DOCX
"""

from .aggregator import aggregate
from .auth import AuthOutcome, Authenticator, Credentials
from .errors import DriverFatalFailure, LoginFormNotFound, PageVisitFailure, ReconError
from .extractor import PageExtractor
from .inspector import DomSnapshot, PageInspector
from .keywords import DEFAULT_TAXONOMY, KeywordTaxonomy
from .links import discover_links, relevant_links
from .models import AggregateReport, CrawlAccumulator, CrawlResult
from .network import NetworkObserver
from .queue_manager import CrawlQueueManager, CrawlState
from .run_config import CrawlConfig
from .storage import (
    DirectoryBlobStore,
    JsonlRecordSink,
    MemoryBlobStore,
    MemoryRecordSink,
    open_storage,
)

__all__ = [
    'AggregateReport',
    'AuthOutcome',
    'Authenticator',
    'CrawlAccumulator',
    'CrawlConfig',
    'CrawlQueueManager',
    'CrawlResult',
    'CrawlState',
    'Credentials',
    'DEFAULT_TAXONOMY',
    'DirectoryBlobStore',
    'DomSnapshot',
    'DriverFatalFailure',
    'JsonlRecordSink',
    'KeywordTaxonomy',
    'LoginFormNotFound',
    'MemoryBlobStore',
    'MemoryRecordSink',
    'NetworkObserver',
    'PageExtractor',
    'PageInspector',
    'PageVisitFailure',
    'ReconError',
    'aggregate',
    'discover_links',
    'open_storage',
    'relevant_links',
]

__version__ = '1.0.0'
