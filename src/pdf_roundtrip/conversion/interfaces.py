from dataclasses import dataclass
from typing import Callable, Protocol, Sequence


class EngineHandle(Protocol):
    """A loaded conversion engine together with its private staging area.

    All calls are blocking; callers should offload to threads if needed.
    Paths are relative to the engine's staging root.
    """

    last_stderr: str

    def invoke(self, argv: Sequence[str]) -> int:
        """Run the engine with ``argv`` and return its exit status."""

    def write_file(self, path: str, data: bytes) -> None:
        ...

    def read_file(self, path: str) -> bytes:
        ...

    def remove_file(self, path: str) -> None:
        ...

    def make_scope(self, path: str) -> None:
        """Create a staging directory; raise FileExistsError if it exists."""

    def close(self) -> None:
        ...


EngineFactory = Callable[[], EngineHandle]


@dataclass(frozen=True)
class StagingPaths:
    scope: str = "working"
    binary_input: str = "working/input.pdf"
    structural_output: str = "working/output.json"
    structural_input: str = "working/input.json"
    binary_output: str = "working/output.pdf"


def structural_export_args(input_path: str, output_path: str) -> list[str]:
    # Uncompressed, unpacked and normalized so the JSON is easy to read and diff.
    return [
        "--json-output",
        "--object-streams=disable",
        "--compress-streams=n",
        "--normalize-content=y",
        input_path,
        output_path,
    ]


def structural_import_args(input_path: str, output_path: str) -> list[str]:
    return ["--json-input", input_path, output_path]
