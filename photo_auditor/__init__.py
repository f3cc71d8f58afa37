"""
Photo Backup Auditor

Checks whether local photos and videos already exist in a Google Photos
library by inferring each file's capture day and matching it against the
items the library holds for that day.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config
from .filename_dates import guess_time_from_filename
from .records import DayRange, LocalPhotoRecord, resolve
from .matcher import Matcher, MatchResult, RemoteMediaItem
from .cache import DayCache, FetchResult
from .extractor import EmbeddedMetadata, MetadataExtractor
from .auditor import PhotoAuditor
from .reporter import AuditReporter

__all__ = [
    'Config',
    'guess_time_from_filename',
    'DayRange',
    'LocalPhotoRecord',
    'resolve',
    'Matcher',
    'MatchResult',
    'RemoteMediaItem',
    'DayCache',
    'FetchResult',
    'EmbeddedMetadata',
    'MetadataExtractor',
    'PhotoAuditor',
    'AuditReporter',
]
