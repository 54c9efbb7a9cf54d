"""Fixed-point iteration between rendered bytes and the hash printed in them.

Each round renders with the current guess and hashes the result; the digest
becomes the next guess. Because the embedded hash is always 64 hex
characters, a new guess never changes text widths or line breaks, so layout
is stable across rounds. Byte-level equality between the printed hash and the
digest of the bytes containing it is a property of the input encoding and is
not guaranteed; when the bound is exhausted the last rendered document and
its true digest are accepted and the result is flagged as not converged.
"""

from collections.abc import Callable

from certdocs.logging.logger import Log
from certdocs.rendering.models import PLACEHOLDER_HASH, RenderedDocument, StabilizationResult

RenderFn = Callable[[str], RenderedDocument]


class HashStabilizer:
    def __init__(self, max_iterations: int = 4) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._max_iterations = max_iterations

    def stabilize(self, render: RenderFn) -> StabilizationResult:
        guess = PLACEHOLDER_HASH
        document = render(guess)
        iterations = 1
        while document.content_hash != guess and iterations < self._max_iterations:
            Log.debug(
                f"Stabilization round {iterations}: "
                f"guess={guess[:12]} digest={document.content_hash[:12]}"
            )
            guess = document.content_hash
            document = render(guess)
            iterations += 1

        return StabilizationResult(
            document=document,
            content_hash=document.content_hash,
            iterations=iterations,
            converged=document.content_hash == guess,
        )
