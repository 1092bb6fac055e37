"""
Cooperative cancellation.
"""

from .exceptions import TransferCancelledError


class CancellationToken:
    """
    Flag shared between a caller and a running export/import.

    The pipeline never interrupts itself mid-batch. It calls
    ``raise_if_cancelled`` at each batch yield point, so a cancelled call stops
    at the next batch boundary and takes the same cleanup path as a failure.

    USAGE:
        token = CancellationToken()
        exporter = ExportOrchestrator(store, cancel_token=token)
        task = asyncio.create_task(exporter.export())
        ...
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        """
        Raise TransferCancelledError if cancellation was requested.

        Args:
            stage: Stage name reported in the error
        """
        if self._cancelled:
            raise TransferCancelledError(stage)
