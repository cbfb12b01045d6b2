"""Contract and timeout wrapper for OCR collaborators."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Protocol

from src.errors import OCRError, OCRTimeoutError
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OCROutput:
    """Text produced by an OCR collaborator, tagged with its method."""

    text: str
    method: str


class OCRCollaborator(Protocol):
    """Anything that turns document bytes into text."""

    method: str

    def extract(self, document: bytes) -> OCROutput: ...


def extract_with_timeout(
    collaborator: OCRCollaborator, document: bytes, timeout_seconds: float
) -> OCROutput:
    """Run one OCR call bounded by a timeout.

    The worker thread is abandoned on timeout; its result is discarded.

    Args:
        collaborator: OCR implementation to call.
        document: Raw document bytes.
        timeout_seconds: Maximum time to wait for the result.

    Raises:
        OCRTimeoutError: If the call does not finish in time.
        OCRError: If the collaborator raises.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(collaborator.extract, document)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        logger.warning(
            "OCR method %s timed out after %.1fs", collaborator.method, timeout_seconds
        )
        raise OCRTimeoutError(collaborator.method, timeout_seconds) from exc
    except OCRError:
        raise
    except Exception as exc:
        raise OCRError(f"OCR method '{collaborator.method}' failed: {exc}") from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
