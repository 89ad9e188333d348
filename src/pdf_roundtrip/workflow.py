"""Editing session state: the document's JSON text and the PDF rebuilt from it.

States move Empty -> Structural -> Regenerated. Any edit drops a regenerated
PDF, so a Regenerated state always holds a PDF built from exactly its text.
Failed conversions never change the state.
"""

import logging
from dataclasses import dataclass
from typing import Union

from .conversion import ConversionGateway, ConversionOutcome, InvalidTransition, Success

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Empty:
    name = "empty"


@dataclass(frozen=True)
class Structural:
    text: str
    name = "structural"


@dataclass(frozen=True)
class Regenerated:
    text: str
    binary: bytes
    name = "regenerated"


WorkflowState = Union[Empty, Structural, Regenerated]


class DocumentWorkflow:
    def __init__(self, gateway: ConversionGateway) -> None:
        self._gateway = gateway
        self._state: WorkflowState = Empty()
        self.filename: str | None = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def text(self) -> str | None:
        if isinstance(self._state, Empty):
            return None
        return self._state.text

    @property
    def binary(self) -> bytes | None:
        if isinstance(self._state, Regenerated):
            return self._state.binary
        return None

    @property
    def busy(self) -> bool:
        return self._gateway.busy

    async def load(self, binary: bytes, filename: str | None = None) -> ConversionOutcome[str]:
        """Convert an uploaded PDF and make its JSON the text being edited."""
        outcome = await self._gateway.to_structural(binary)
        if isinstance(outcome, Success):
            self._state = Structural(outcome.payload)
            self.filename = filename
            logger.info("Loaded %s (%d chars of JSON)", filename or "document", len(outcome.payload))
        else:
            logger.warning("Load failed, state left at %s: %s", self._state.name, outcome.message)
        return outcome

    def edit(self, text: str) -> None:
        if isinstance(self._state, Empty):
            raise InvalidTransition("no document loaded")
        if text == self._state.text:
            return
        if isinstance(self._state, Regenerated):
            logger.info("Text edited; dropping the regenerated PDF")
        self._state = Structural(text)

    async def regenerate(self) -> ConversionOutcome[bytes]:
        """Rebuild the PDF from the current text."""
        if isinstance(self._state, Empty):
            raise InvalidTransition("no document loaded")
        text = self._state.text
        outcome = await self._gateway.to_binary(text)
        if not isinstance(outcome, Success):
            logger.warning("Regenerate failed, state left at %s: %s", self._state.name, outcome.message)
            return outcome
        if isinstance(self._state, Empty) or self._state.text != text:
            # Edited (or reset) while the conversion ran; the PDF is already stale.
            logger.info("Text changed during regenerate; discarding %d bytes", len(outcome.payload))
            return outcome
        self._state = Regenerated(text, outcome.payload)
        logger.info("Regenerated PDF (%d bytes)", len(outcome.payload))
        return outcome

    def reset(self) -> None:
        self._state = Empty()
        self.filename = None
