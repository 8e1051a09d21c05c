"""A Markov chain text generator over arbitrary hashable tokens."""

from __future__ import annotations

import random
from collections import Counter, defaultdict
from typing import Generic, Hashable, Iterable, Optional, TypeVar

T = TypeVar("T", bound=Hashable)

_State = tuple


class Chain(Generic[T]):
    """A Markov chain of a given order.

    Each fed sequence is padded with start and end markers, so generation
    always starts like some fed sequence and stops where one of them ended.
    """

    def __init__(self, order: int = 1, rng: random.Random | None = None) -> None:
        if order < 1:
            raise ValueError("order must be at least 1")
        self.order = order
        self._rng = rng if rng is not None else random.Random()
        self._transitions: defaultdict[_State, Counter[Optional[T]]] = defaultdict(Counter)

    def is_empty(self) -> bool:
        """Tell whether nothing has been fed yet."""
        return not self._transitions

    def feed(self, tokens: Iterable[T]) -> Chain[T]:
        """Learn the transitions of one token sequence; empty ones are ignored."""
        sequence = list(tokens)
        if not sequence:
            return self
        padded: list[Optional[T]] = [None] * self.order + sequence + [None]
        for end in range(self.order, len(padded)):
            state = tuple(padded[end - self.order : end])
            self._transitions[state][padded[end]] += 1
        return self

    def _next(self, state: _State) -> Optional[T]:
        counts = self._transitions[state]
        choices = list(counts)
        return self._rng.choices(choices, weights=[counts[c] for c in choices])[0]

    def generate(self) -> list[T]:
        """Produce one sequence of tokens from the learned transitions."""
        if self.is_empty():
            return []
        state: _State = (None,) * self.order
        result: list[T] = []
        while True:
            token = self._next(state)
            if token is None:
                return result
            result.append(token)
            state = state[1:] + (token,)

    def generate_str(self) -> str:
        """Produce one sequence and join its tokens with single spaces."""
        return " ".join(str(token) for token in self.generate())