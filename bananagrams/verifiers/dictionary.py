"""
Dictionary of valid words, loaded once per process.

``initialize`` is an idempotent one-shot load: concurrent callers await the
same in-flight task. Until the load succeeds the validator is not ready and
word checks raise ``DictionaryNotReadyError`` instead of answering, so
"not loaded yet" can never be mistaken for "checked and invalid".
"""

import asyncio
import bisect
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union


logger = logging.getLogger(__name__)

MIN_WORD_LENGTH = 2

Loader = Callable[[], Awaitable[str]]


class DictionaryStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class DictionaryNotReadyError(RuntimeError):
    """Raised when a word is checked before the dictionary is ready."""

    def __init__(self, status: DictionaryStatus):
        self.status = status
        super().__init__(f"Dictionary is not ready ({status.value})")


def file_loader(path: Union[str, Path]) -> Loader:
    """Loader reading a newline-delimited word list from disk."""
    path = Path(path)

    async def load() -> str:
        return await asyncio.to_thread(path.read_text, encoding="utf-8", errors="ignore")

    return load


def parse_word_list(text: str) -> List[str]:
    """Split a word list into stripped, uppercased, non-empty entries."""
    return [w for w in (line.strip().upper() for line in text.splitlines()) if w]


class WordValidator:
    """
    O(1) membership test and prefix search over an uppercase word set.

    Args:
        loader: Coroutine factory returning the raw word list text
    """

    def __init__(self, loader: Optional[Loader] = None):
        self._loader = loader
        self._words: set = set()
        self._sorted: List[str] = []
        self._status = DictionaryStatus.NOT_LOADED
        self._task: Optional[asyncio.Task] = None
        self.last_error: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "WordValidator":
        return cls(loader=file_loader(path))

    @classmethod
    def from_words(cls, words: Iterable[str]) -> "WordValidator":
        """Build a validator that is ready immediately (tests, embedded lists)."""
        validator = cls()
        validator._install(w.strip().upper() for w in words)
        return validator

    @property
    def status(self) -> DictionaryStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is DictionaryStatus.READY

    def __len__(self) -> int:
        return len(self._words)

    async def initialize(self, force: bool = False) -> DictionaryStatus:
        """
        Load the word list once.

        Callers arriving while a load is in flight await that same load.
        A failed load leaves the validator in ``FAILED``; pass ``force=True``
        to try again.

        Returns:
            The status after the load settles
        """
        if self._status is DictionaryStatus.READY:
            return self._status
        if self._status is DictionaryStatus.FAILED and not force:
            return self._status

        if self._task is None or (force and self._task.done()):
            self._status = DictionaryStatus.LOADING
            self._task = asyncio.ensure_future(self._load())

        await asyncio.shield(self._task)
        return self._status

    async def _load(self) -> None:
        if self._loader is None:
            self._fail("No word list source configured")
            return
        try:
            text = await self._loader()
        except Exception as exc:
            self._fail(str(exc))
            return

        words = parse_word_list(text)
        if not words:
            self._fail("Word list is empty")
            return
        self._install(words)
        logger.info("Dictionary loaded: %d words", len(self._words))

    def _fail(self, reason: str) -> None:
        self._status = DictionaryStatus.FAILED
        self._task = None
        self.last_error = reason
        logger.warning("Dictionary load failed: %s", reason)

    def _install(self, words: Iterable[str]) -> None:
        self._words = {w for w in words if w}
        self._sorted = sorted(self._words)
        self._status = DictionaryStatus.READY
        self.last_error = None

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise DictionaryNotReadyError(self._status)

    def is_valid_word(self, word: str) -> bool:
        """Case-insensitive membership test; words under 2 letters are never valid."""
        self._require_ready()
        normalized = word.strip().upper()
        if len(normalized) < MIN_WORD_LENGTH:
            return False
        return normalized in self._words

    def validate_words(self, words: Iterable[str]) -> Dict[str, bool]:
        """Batch membership test keyed by the words as given."""
        return {word: self.is_valid_word(word) for word in words}

    def words_starting_with(self, prefix: str, limit: int = 10) -> List[str]:
        """Up to ``limit`` words beginning with ``prefix``, alphabetically."""
        self._require_ready()
        prefix = prefix.strip().upper()
        start = bisect.bisect_left(self._sorted, prefix)
        suggestions: List[str] = []
        for word in self._sorted[start:]:
            if not word.startswith(prefix) or len(suggestions) >= limit:
                break
            suggestions.append(word)
        return suggestions
