"""
autotag - automatic document tags

Suggests tags for a document by extracting keywords from its text, either
with a local frequency ranking or through a remote text-completion service.

Example Usage:
    >>> from autotag import ExtractionConfig, ExtractionMethod, extract
    >>> extract("testing testing coding", ExtractionConfig())
    ['testing', 'coding']
    >>> config = ExtractionConfig(method=ExtractionMethod.REMOTE, api_key="sk-...")
    >>> extract("<p>Some post body</p>", config)
"""

__version__ = "1.0.0"
__author__ = "autotag Contributors"

# Configuration
from autotag.config import (
    AutotagConfig,
    ConfigError,
    ExtractionConfig,
    ExtractionMethod,
    get_config,
    init_config,
)

# Extraction
from autotag.keywords import BuiltinExtractor, rank
from autotag.remote import CompletionClient, CompletionConfig, RemoteExtractor, extract_remote
from autotag.dispatcher import ExtractionDispatcher, create_default_dispatcher, extract

# Documents
from autotag.auto_tag import auto_tag_document, auto_tag_documents, suggestion_response

__all__ = [
    # Config
    "AutotagConfig",
    "ConfigError",
    "ExtractionConfig",
    "ExtractionMethod",
    "get_config",
    "init_config",
    # Extraction
    "BuiltinExtractor",
    "rank",
    "CompletionClient",
    "CompletionConfig",
    "RemoteExtractor",
    "extract_remote",
    "ExtractionDispatcher",
    "create_default_dispatcher",
    "extract",
    # Documents
    "auto_tag_document",
    "auto_tag_documents",
    "suggestion_response",
]
