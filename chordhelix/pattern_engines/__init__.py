"""
Pattern engines: generators that render a note pattern for one track.

Every engine implements ``render(structure, seed, wildcards)``. The song's
shared values arrive in ``structure`` and all randomness comes from ``seed``,
so the same arguments always render the same pattern.

- ``StringPatternEngine`` (here) - picks one of a few literal pattern strings
- ``chordhelix.pattern_engines.random_fragment.RandomFragmentPatternEngine`` -
  assembles patterns from random fragments following a pattern-of-patterns
- ``chordhelix.pattern_engines.crescendo.CrescendoPatternEngine`` - repeats a
  pattern and shapes its velocities along a power curve
"""

import abc
import logging
import random
import typing

import chordhelix.pattern
import chordhelix.structure


logger = logging.getLogger(__name__)


class PatternEngine (abc.ABC):

	"""Abstract base for pattern engines."""

	@abc.abstractmethod
	def render (self, structure: chordhelix.structure.SongStructure, seed: int, wildcards: str = "") -> chordhelix.pattern.Pattern:

		"""Render a pattern. ``wildcards`` lists the characters allowed in place of a pitch."""

		...


class StringPatternEngine (PatternEngine):

	"""
	Renders one of a fixed set of pattern strings.

	When more than one string is given, the seed picks which one is used.
	Repetition shorthand (``0,-*3``, ``(0,-)*2``) is expanded before parsing.
	"""

	def __init__ (self, pattern_strings: typing.Union[str, typing.Sequence[str]], ticks_per_beat: typing.Optional[int] = None) -> None:

		if isinstance(pattern_strings, str):
			pattern_strings = [pattern_strings]

		if not pattern_strings:
			raise ValueError("StringPatternEngine requires at least one pattern string")

		self.pattern_strings: typing.List[str] = list(pattern_strings)
		self.ticks_per_beat = ticks_per_beat


	def render (self, structure: chordhelix.structure.SongStructure, seed: int, wildcards: str = "") -> chordhelix.pattern.Pattern:

		rng = random.Random(seed)
		text = self.pattern_strings[rng.randrange(len(self.pattern_strings))]

		logger.debug(f"Using pattern string {text}")

		return chordhelix.pattern.Pattern.parse_string(
			chordhelix.pattern.expand_pattern_string(text),
			ticks_per_beat = self.ticks_per_beat,
			wildcards = wildcards,
			max_velocity = structure.max_velocity
		)
