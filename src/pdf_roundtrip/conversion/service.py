import asyncio
import logging
from typing import Sequence

from .errors import EngineUnavailable, StagingProtocolViolation
from .interfaces import StagingPaths, structural_export_args, structural_import_args
from .loader import EngineLoader
from .outcomes import ConversionOutcome, Failure, FailureReason, Success
from .staging import StagingFilesystem

logger = logging.getLogger(__name__)

SUCCESS_EXIT_CODE = 0


class ConversionGateway:
    """Runs PDF <-> JSON round trips through the engine.

    Staging paths are fixed, so conversions are serialized: a request made
    while another is in flight waits for it to finish. Every failure comes
    back as a ``Failure`` outcome; nothing is raised to the caller.
    """

    def __init__(self, loader: EngineLoader, *, paths: StagingPaths | None = None) -> None:
        self._loader = loader
        self._paths = paths or StagingPaths()
        self._lock = asyncio.Lock()
        self._running: set[asyncio.Task] = set()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def to_structural(self, binary: bytes) -> ConversionOutcome[str]:
        p = self._paths
        outcome = await self._convert(
            p.binary_input,
            bytes(binary),
            structural_export_args(p.binary_input, p.structural_output),
            p.structural_output,
        )
        if not isinstance(outcome, Success):
            return outcome
        try:
            text = outcome.payload.decode("utf-8")
        except UnicodeDecodeError as e:
            return Failure(SUCCESS_EXIT_CODE, "engine produced text that is not valid UTF-8", detail=str(e))
        return Success(text)

    async def to_binary(self, text: str) -> ConversionOutcome[bytes]:
        p = self._paths
        return await self._convert(
            p.structural_input,
            text.encode("utf-8"),
            structural_import_args(p.structural_input, p.binary_output),
            p.binary_output,
        )

    async def _convert(
        self,
        input_path: str,
        payload: bytes,
        argv: Sequence[str],
        output_path: str,
    ) -> ConversionOutcome[bytes]:
        # The staged run holds the lock until qpdf is done, even if our caller
        # is cancelled, so a later request can never overwrite its slots.
        task = asyncio.create_task(self._convert_locked(input_path, payload, argv, output_path))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return await asyncio.shield(task)

    async def _convert_locked(
        self,
        input_path: str,
        payload: bytes,
        argv: Sequence[str],
        output_path: str,
    ) -> ConversionOutcome[bytes]:
        async with self._lock:
            try:
                handle = await self._loader.acquire()
            except EngineUnavailable as e:
                return Failure(None, str(e), FailureReason.ENGINE_UNAVAILABLE)

            staging = StagingFilesystem(handle)
            try:
                def stage_input() -> None:
                    staging.ensure_scope(self._paths.scope)
                    staging.write(input_path, payload)
                    # A run that exits 0 without output must not serve the last result.
                    staging.discard(output_path)

                await asyncio.to_thread(stage_input)
                exit_code = await asyncio.to_thread(handle.invoke, list(argv))
                if exit_code != SUCCESS_EXIT_CODE:
                    return Failure(exit_code, "engine exited non-zero", detail=handle.last_stderr)
                data = await asyncio.to_thread(staging.read, output_path)
            except StagingProtocolViolation as e:
                logger.exception("Staging protocol violated during %s", argv[0])
                return Failure(None, str(e), FailureReason.STAGING_VIOLATION)
            except OSError as e:
                logger.exception("Staging I/O failed during %s", argv[0])
                return Failure(None, f"staging I/O failed: {e}", FailureReason.INTERNAL_ERROR)
            except Exception as e:
                logger.exception("Engine call failed during %s", argv[0])
                return Failure(None, f"engine call failed: {e}", FailureReason.INTERNAL_ERROR)
            logger.info("%s produced %d bytes", argv[0], len(data))
            return Success(data)
