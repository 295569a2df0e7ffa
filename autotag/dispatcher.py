"""
Extraction dispatcher.

Selects a tag extractor for each call from the ``ExtractionConfig`` passed
in and returns its candidates. The dispatcher holds no settings of its own:
the same dispatcher serves built-in and remote calls side by side.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from .config import ExtractionConfig, ExtractionMethod
from .keywords import BuiltinExtractor
from .plugins import PluginRegistry, TagExtractor
from .remote import CompletionClient, CompletionConfig, RemoteExtractor

logger = logging.getLogger(__name__)


class ExtractionDispatcher:
    """
    Routes extraction calls to registered ``TagExtractor`` plugins.

    Runtime failures never reach the caller; "no tags" is always an empty
    list.
    """

    def __init__(self, registry: Optional[PluginRegistry] = None, max_workers: int = 4):
        self.registry = registry or PluginRegistry(validate_strict=False)
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def register(self, extractor: TagExtractor) -> None:
        """Add an extraction strategy."""
        self.registry.register(extractor, 'tag_extractor')

    def extract(self, content: str, config: ExtractionConfig) -> List[str]:
        """
        Extract candidate tags for content.

        Args:
            content: Document body, possibly with markup
            config: Per-call extraction settings

        Returns:
            Ordered candidate tags, possibly empty

        Raises:
            TypeError: If config is not an ExtractionConfig
        """
        if not isinstance(config, ExtractionConfig):
            raise TypeError(f"config must be an ExtractionConfig, got {type(config).__name__}")

        method = config.method
        if method is ExtractionMethod.UNSUPPORTED:
            logger.warning("Extraction method is unsupported, returning no tags")
            return []

        if method.requires_credential and not config.has_credential:
            logger.debug(f"No credential for {method.value} extraction, returning no tags")
            return []

        extractor = self.registry.get_extractor(method)
        if extractor is None:
            logger.warning(f"No extractor registered for method {method.value}")
            return []

        try:
            tags = extractor.extract(content or "", config)
        except Exception as e:
            logger.error(f"Extractor {extractor.name} failed: {e}")
            return []

        tags = self._normalize(tags)
        logger.debug(f"Extractor {extractor.name} suggested: {tags}")

        hook_results = self.registry.trigger_hook('tags_extracted', content, config, tags)
        for result in hook_results:
            if isinstance(result, list):
                tags = self._normalize(result)
                break

        return tags

    @staticmethod
    def _normalize(tags) -> List[str]:
        if not tags:
            return []
        return [tag for tag in tags if isinstance(tag, str)]

    def submit(self, content: str, config: ExtractionConfig,
               executor: Optional[ThreadPoolExecutor] = None) -> Future:
        """
        Run ``extract`` in the background.

        Args:
            content: Document body
            config: Per-call extraction settings
            executor: Executor to run on (a private pool is used if None)

        Returns:
            Future resolving to the same list ``extract`` returns
        """
        if executor is None:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="autotag-extract"
                )
            executor = self._executor
        return executor.submit(self.extract, content, config)

    def close(self) -> None:
        """Shut down the private background pool, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def create_default_dispatcher(completion_config: Optional[CompletionConfig] = None) -> ExtractionDispatcher:
    """
    Create a dispatcher with the built-in and remote extractors registered.

    Args:
        completion_config: Remote service settings (defaults if None)
    """
    dispatcher = ExtractionDispatcher()
    dispatcher.register(BuiltinExtractor())
    dispatcher.register(RemoteExtractor(CompletionClient(completion_config)))
    return dispatcher


_default_dispatcher: Optional[ExtractionDispatcher] = None


def get_dispatcher() -> ExtractionDispatcher:
    """Get or create the shared default dispatcher."""
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = create_default_dispatcher()
    return _default_dispatcher


def extract(content: str, config: ExtractionConfig) -> List[str]:
    """Extract candidate tags using the default dispatcher."""
    return get_dispatcher().extract(content, config)
