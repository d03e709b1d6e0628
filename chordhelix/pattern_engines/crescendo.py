"""Crescendo and decrescendo patterns.

The engine repeats a pattern to fill ``pattern_ticks``, optionally framed by
a prefix and a suffix, and scales every note's velocity along a power curve
from ``min_velocity`` at the first tick to ``max_velocity`` at the last one.
A negative exponent runs the curve the other way, for a decrescendo.
"""

import dataclasses
import logging
import typing

import chordhelix.constants.velocity
import chordhelix.easing
import chordhelix.exceptions
import chordhelix.pattern
import chordhelix.pattern_engines
import chordhelix.structure


logger = logging.getLogger(__name__)


class CrescendoPatternEngine (chordhelix.pattern_engines.PatternEngine):

	"""
	Repeats a pattern with velocities following a power curve.

	Example:
		```python
		# A 4-bar snare roll getting louder, quadratic curve
		engine = CrescendoPatternEngine(
			pattern = "0,-",
			pattern_ticks = 64,
			min_velocity = 20,
			max_velocity = 127,
			velocity_exponent = 2
		)
		```
	"""

	def __init__ (
		self,
		pattern: str,
		pattern_ticks: int,
		min_velocity: float,
		max_velocity: float,
		velocity_exponent: float = 1.0,
		prefix_pattern: typing.Optional[str] = None,
		suffix_pattern: typing.Optional[str] = None,
		ticks_per_beat: typing.Optional[int] = None,
		prefix_ticks_per_beat: typing.Optional[int] = None,
		suffix_ticks_per_beat: typing.Optional[int] = None
	) -> None:

		"""Initialize the engine.

		Parameters:
			pattern: The pattern to repeat.
			pattern_ticks: Total length of the rendered pattern in ticks.
			min_velocity: Velocity at the start of the curve.
			max_velocity: Velocity at the end of the curve.
			velocity_exponent: Curve shape: 1 linear, 2 quadratic and so on.
				Negative values swap the ends.
			prefix_pattern: Played once before the repetitions.
			suffix_pattern: Played once after the repetitions.
			ticks_per_beat: When given, ``pattern`` lengths are in beats.
			prefix_ticks_per_beat: The same for ``prefix_pattern``.
			suffix_ticks_per_beat: The same for ``suffix_pattern``.
		"""

		if pattern_ticks <= 0:
			raise ValueError("Pattern ticks must be positive")

		self.pattern = pattern
		self.pattern_ticks = pattern_ticks
		self.min_velocity = min_velocity
		self.max_velocity = max_velocity
		self.velocity_exponent = velocity_exponent
		self.prefix_pattern = prefix_pattern
		self.suffix_pattern = suffix_pattern
		self.ticks_per_beat = ticks_per_beat
		self.prefix_ticks_per_beat = prefix_ticks_per_beat
		self.suffix_ticks_per_beat = suffix_ticks_per_beat


	def generate_pattern_string (self, structure: chordhelix.structure.SongStructure, wildcards: str = "") -> str:

		"""Build the shaped pattern as a string with all lengths in ticks.

		Raises:
			GenerationError: If prefix and suffix are longer than
				``pattern_ticks``, the remaining ticks are not a whole number of
				repetitions, or the result is shorter than 2 ticks.
		"""

		prefix = self._parse_optional(self.prefix_pattern, self.prefix_ticks_per_beat, structure, wildcards)
		main = chordhelix.pattern.Pattern.parse_string(self.pattern, self.ticks_per_beat, wildcards, structure.max_velocity)
		suffix = self._parse_optional(self.suffix_pattern, self.suffix_ticks_per_beat, structure, wildcards)

		prefix_ticks = prefix.ticks if prefix is not None else 0
		suffix_ticks = suffix.ticks if suffix is not None else 0

		if prefix_ticks + suffix_ticks > self.pattern_ticks:
			raise chordhelix.exceptions.GenerationError("Prefix and suffix patterns are longer than the pattern ticks")

		repetitions, remainder = divmod(self.pattern_ticks - prefix_ticks - suffix_ticks, main.ticks)

		if remainder != 0:
			raise chordhelix.exceptions.GenerationError(
				f"{self.pattern_ticks - prefix_ticks - suffix_ticks} ticks are not a multiple of the {main.ticks}-tick pattern"
			)

		logger.debug(f"Repetitions: {repetitions}")

		total_ticks = prefix_ticks + repetitions * main.ticks + suffix_ticks

		if total_ticks < 2:
			raise chordhelix.exceptions.GenerationError("The shaped pattern must be at least 2 ticks long")

		tokens: typing.List[str] = []
		tick = 0

		for pattern in [prefix] + [main] * repetitions + [suffix]:

			if pattern is None:
				continue

			for entry in pattern:
				tokens.append(self._shape(entry, tick, total_ticks, structure))
				tick += entry.ticks

		text = ",".join(tokens)
		logger.debug(f"Pattern: {text}")

		return text


	def render (self, structure: chordhelix.structure.SongStructure, seed: int, wildcards: str = "") -> chordhelix.pattern.Pattern:

		return chordhelix.pattern.Pattern.parse_string(
			self.generate_pattern_string(structure, wildcards),
			wildcards = wildcards,
			max_velocity = structure.max_velocity
		)


	def _shape (self, entry: chordhelix.pattern.PatternEntry, tick: int, total_ticks: int, structure: chordhelix.structure.SongStructure) -> str:

		"""Return the token for one entry with its velocity placed on the curve."""

		if entry.is_pause:
			return entry.to_token(structure.max_velocity)

		position = tick / (total_ticks - 1)
		curve = chordhelix.easing.power_curve(position, self.min_velocity, self.max_velocity, self.velocity_exponent)
		velocity = int(curve * entry.velocity / structure.max_velocity)

		# A note must not turn into a pause unless the curve is allowed to reach 0.
		if velocity < 1 and self.min_velocity >= 1:
			velocity = 1

		velocity = max(chordhelix.constants.velocity.MIN_VELOCITY, min(velocity, structure.max_velocity))

		return dataclasses.replace(entry, velocity=velocity).to_token(structure.max_velocity)


	@staticmethod
	def _parse_optional (
		text: typing.Optional[str],
		ticks_per_beat: typing.Optional[int],
		structure: chordhelix.structure.SongStructure,
		wildcards: str
	) -> typing.Optional[chordhelix.pattern.Pattern]:

		if text is None or not text.strip():
			return None

		return chordhelix.pattern.Pattern.parse_string(text, ticks_per_beat, wildcards, structure.max_velocity)
