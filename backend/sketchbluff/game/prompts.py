from __future__ import annotations

import random
from typing import Iterable


DEFAULT_PROMPTS: tuple[str, ...] = (
    "A sleeping bear on a cozy chair",
    "A robot dancing in the rain",
    "A cat wearing a superhero cape",
    "An elephant balancing on a ball",
    "A wizard cooking breakfast",
    "A penguin surfing on a wave",
    "A dragon reading a book",
    "A unicorn playing guitar",
)


class PromptBank:
    """Fixed list of prompts; every draw is independent (with replacement)."""

    def __init__(self, prompts: Iterable[str] = DEFAULT_PROMPTS, rng: random.Random | None = None) -> None:
        self._prompts = tuple(p for p in prompts if p)
        if not self._prompts:
            raise ValueError("PromptBank needs at least one prompt")
        self._rng = rng or random.Random()

    @property
    def prompts(self) -> tuple[str, ...]:
        return self._prompts

    def draw(self) -> str:
        return self._rng.choice(self._prompts)

    def __len__(self) -> int:
        return len(self._prompts)
