"""
Adapters for the external recognition and reference-search services.
"""
from .base import Recognizer, ReferenceSearch
from .fdc_search import FDCSearchClient
from .recognition import RecognizeClient, merge_recognition_tags

__all__ = [
    "FDCSearchClient",
    "RecognizeClient",
    "Recognizer",
    "ReferenceSearch",
    "merge_recognition_tags",
]
