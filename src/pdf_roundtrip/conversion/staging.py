from .errors import StagingNotFound
from .interfaces import EngineHandle


class StagingFilesystem:
    """Named byte slots inside the engine's staging root.

    The only supported order is write, invoke, then read the engine's output.
    Reading a slot that nobody wrote raises StagingNotFound.
    """

    def __init__(self, handle: EngineHandle) -> None:
        self._handle = handle

    def ensure_scope(self, name: str) -> None:
        try:
            self._handle.make_scope(name)
        except FileExistsError:
            pass

    def write(self, path: str, data: bytes) -> None:
        self._handle.write_file(path, data)

    def read(self, path: str) -> bytes:
        try:
            return self._handle.read_file(path)
        except FileNotFoundError as e:
            raise StagingNotFound(f"staging slot {path} was read before it was written") from e

    def discard(self, path: str) -> None:
        self._handle.remove_file(path)
