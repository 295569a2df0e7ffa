"""
Auto-tagging for documents.

Documents are plain dictionaries with ``content`` and ``tags`` keys. This
module applies extracted tags to them the way a host does when a document
is saved: tags the user picked are always added; otherwise suggestions are
added only when the config's ``auto_apply`` flag is set.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import ExtractionConfig
from .constants import EMPTY_CONTENT_MESSAGE, NO_TAGS_MESSAGE
from .dispatcher import ExtractionDispatcher, get_dispatcher

logger = logging.getLogger(__name__)


def merge_tags(existing: List[str], new: List[str]) -> List[str]:
    """Append new tags to existing ones, skipping tags already present."""
    merged = list(existing)
    for tag in new:
        if tag not in merged:
            merged.append(tag)
    return merged


def suggest_tags_for_document(document: Dict[str, Any],
                              config: ExtractionConfig,
                              dispatcher: Optional[ExtractionDispatcher] = None) -> List[str]:
    """
    Suggest tags for a single document.

    Args:
        document: The document dictionary
        config: Extraction settings
        dispatcher: Dispatcher to use (the shared default if None)

    Returns:
        List of suggested tags
    """
    dispatcher = dispatcher or get_dispatcher()
    return dispatcher.extract(document.get('content') or '', config)


def auto_tag_document(document: Dict[str, Any],
                      config: ExtractionConfig,
                      selected_tags: Optional[List[str]] = None,
                      dispatcher: Optional[ExtractionDispatcher] = None) -> Dict[str, Any]:
    """
    Add tags to a document on save.

    Args:
        document: The document to tag (updated in place)
        config: Extraction settings
        selected_tags: Tags the user picked from the suggestions. When
                       given, these are added and nothing is extracted.
        dispatcher: Dispatcher to use (the shared default if None)

    Returns:
        The document
    """
    existing_tags = document.get('tags') or []

    if selected_tags is not None:
        new_tags = [t.strip() for t in selected_tags if t and t.strip()]
    elif config.auto_apply:
        new_tags = suggest_tags_for_document(document, config, dispatcher)
    else:
        logger.debug(f"Auto-apply disabled, leaving document {document.get('id')} untouched")
        return document

    if not new_tags:
        logger.info(f"No tags to add to document {document.get('id')}")
        return document

    document['tags'] = merge_tags(existing_tags, new_tags)
    logger.info(f"Added tags: {[t for t in document['tags'] if t not in existing_tags]}")

    registry = (dispatcher or get_dispatcher()).registry
    registry.trigger_hook('document_auto_tagged', document)

    return document


def auto_tag_documents(documents: List[Dict[str, Any]],
                       config: ExtractionConfig,
                       filter_func: Optional[Callable[[Dict[str, Any]], bool]] = None,
                       dry_run: bool = False,
                       dispatcher: Optional[ExtractionDispatcher] = None
                       ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Auto-tag multiple documents.

    Suggestions are applied regardless of ``config.auto_apply``; a bulk run
    is an explicit request to tag.

    Args:
        documents: List of documents to process
        config: Extraction settings
        filter_func: Optional function selecting which documents to tag
        dry_run: If True, count suggestions without modifying documents
        dispatcher: Dispatcher to use (the shared default if None)

    Returns:
        Tuple of (documents, statistics)
    """
    stats = {
        'total_processed': 0,
        'total_tagged': 0,
        'total_tags_added': 0,
        'most_common_tags': {}
    }

    tag_counter: Dict[str, int] = {}

    for document in documents:
        if filter_func and not filter_func(document):
            continue

        stats['total_processed'] += 1
        original_tags = document.get('tags') or []

        suggested = suggest_tags_for_document(document, config, dispatcher)
        new_tags = [t for t in dict.fromkeys(suggested) if t not in original_tags]
        if not new_tags:
            continue

        stats['total_tagged'] += 1
        stats['total_tags_added'] += len(new_tags)
        for tag in new_tags:
            tag_counter[tag] = tag_counter.get(tag, 0) + 1

        if not dry_run:
            document['tags'] = merge_tags(original_tags, new_tags)

    if tag_counter:
        sorted_tags = sorted(tag_counter.items(), key=lambda x: x[1], reverse=True)
        stats['most_common_tags'] = dict(sorted_tags[:10])

    return documents, stats


def suggestion_response(content: str,
                        config: ExtractionConfig,
                        dispatcher: Optional[ExtractionDispatcher] = None) -> Dict[str, Any]:
    """
    Build the response payload for an interactive suggestion request.

    Returns:
        ``{"success": True, "data": [tags]}``, or ``{"success": False,
        "data": message}`` when the content is empty or nothing was found
    """
    if not content or not content.strip():
        return {'success': False, 'data': EMPTY_CONTENT_MESSAGE}

    dispatcher = dispatcher or get_dispatcher()
    tags = dispatcher.extract(content, config)
    if not tags:
        return {'success': False, 'data': NO_TAGS_MESSAGE}

    return {'success': True, 'data': tags}
