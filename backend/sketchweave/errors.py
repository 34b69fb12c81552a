"""Error taxonomy for the canvas engine and the LLM boundary.

Synthesis and interpreter errors are raised inside single-item code paths and
turned into failed results at the batch boundary; they never escape a batch.
"""

from __future__ import annotations


class SketchWeaveError(ValueError):
    """Base class for all engine errors."""


class SynthesisError(SketchWeaveError):
    """An element description could not be turned into valid elements."""


class InterpreterError(SketchWeaveError):
    """An action could not be applied to the scene."""


class ElementNotFoundError(InterpreterError):
    def __init__(self, element_id: str) -> None:
        super().__init__(f"Element {element_id} not found")
        self.element_id = element_id


class TransportFailure(SketchWeaveError):
    """The text-generation provider call itself failed."""


class LLMNotConfiguredError(SketchWeaveError):
    """No API key is configured for the text-generation provider."""
