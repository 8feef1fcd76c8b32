"""Backend collaborators for importing statements and persisting reconciliations."""

from pathlib import Path

from ..config import ReconConfig
from .base import ReconciliationBackend
from .http_backend import HttpReconciliationBackend
from .local import LocalFileBackend


def build_backend(config: ReconConfig) -> ReconciliationBackend:
    """Create the backend selected by ``backend.kind``."""
    backend_config = config.backend
    if backend_config.kind == "http":
        return HttpReconciliationBackend(
            base_url=backend_config.base_url,
            api_token=backend_config.api_token,
            timeout=backend_config.timeout_seconds,
        )
    return LocalFileBackend(
        config,
        history_file=Path(backend_config.history_file),
        ledger_file=Path(backend_config.ledger_file) if backend_config.ledger_file else None,
    )


__all__ = [
    "ReconciliationBackend",
    "HttpReconciliationBackend",
    "LocalFileBackend",
    "build_backend",
]
