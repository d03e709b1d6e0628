"""Patterns assembled from randomly chosen fragments.

A pattern-of-patterns such as ``A1,A2,A1,B1`` describes the layout. Each
token is a group letter plus a variation digit. Every group has a list of
candidate fragments, and a part is built by appending random fragments until
it is exactly ``pattern_ticks`` long.

- The first token of a group (``A1``) defines the group's base part.
- A repeated token (the second ``A1``) reuses its part verbatim.
- A new token of a known group (``A2``) is a fresh variation. With
  ``unique_pattern_parts`` it must differ from every part the group has
  produced so far.
- ``-`` is a pause for the whole ``pattern_ticks``.

Example:
	```python
	groups = GroupFragmentSet.from_mapping({
		"A": "0,-|1,-,2,-|0/2",
		"B": "5/4|-/2,7/2"
	})

	engine = RandomFragmentPatternEngine("A1,A2,A1,B1", groups, pattern_ticks=8)
	pattern = engine.render(structure, seed=7)
	pattern.ticks   # → 32
	```
"""

import dataclasses
import logging
import random
import typing

import chordhelix.constants.retries
import chordhelix.exceptions
import chordhelix.pattern
import chordhelix.pattern_engines
import chordhelix.structure


logger = logging.getLogger(__name__)


class GroupFragmentSet:

	"""
	Candidate fragments for each group, keyed by a single character.
	"""

	def __init__ (self) -> None:

		self._groups: typing.Dict[str, typing.Tuple[str, ...]] = {}


	@classmethod
	def from_mapping (cls, mapping: typing.Mapping[str, typing.Union[str, typing.Sequence[str]]]) -> "GroupFragmentSet":

		"""Build a set from ``{group: candidates}``.

		Candidates are either a list of fragment strings or one string of
		alternatives separated by ``|``. Repetition shorthand in each fragment
		is expanded.
		"""

		fragments = cls()

		for group, candidates in mapping.items():

			if isinstance(candidates, str):
				candidates = chordhelix.pattern.split_alternatives(candidates)

			fragments.add(group, [chordhelix.pattern.expand_pattern_string(candidate) for candidate in candidates])

		return fragments


	def add (self, group: str, candidates: typing.Sequence[str]) -> None:

		"""Register the candidate fragments of one group.

		Raises:
			ParseError: If the group key is not exactly one character or the
				candidate list is empty.
			PatternReferenceError: If the group is already defined.
		"""

		if group is None or len(group) != 1:
			raise chordhelix.exceptions.ParseError(f"Group key must be exactly one character, got {group!r}")

		if group in self._groups:
			raise chordhelix.exceptions.PatternReferenceError(f"Fragments for group {group!r} defined more than once")

		if not candidates:
			raise chordhelix.exceptions.ParseError(f"Fragments for group {group!r} are empty")

		self._groups[group] = tuple(candidates)


	def get (self, group: str) -> typing.Tuple[str, ...]:

		"""Return the candidates of a group.

		Raises:
			PatternReferenceError: If the group is not defined.
		"""

		if group not in self._groups:
			raise chordhelix.exceptions.PatternReferenceError(f"Fragments for group {group!r} not found")

		return self._groups[group]


	def __contains__ (self, group: object) -> bool:

		return group in self._groups


	def __len__ (self) -> int:

		return len(self._groups)


@dataclasses.dataclass
class _GeneratedParts:

	"""Parts generated during one call, discarded when it returns."""

	base_parts: typing.Dict[str, str] = dataclasses.field(default_factory=dict)
	token_parts: typing.Dict[str, str] = dataclasses.field(default_factory=dict)
	used: typing.Set[typing.Tuple[str, str]] = dataclasses.field(default_factory=set)


def _fill_part (
	group: str,
	groups: GroupFragmentSet,
	pattern_ticks: int,
	rng: random.Random,
	ticks_per_beat: typing.Optional[int]
) -> str:

	"""Append random fragments of a group until they add up to exactly ``pattern_ticks``.

	A fragment that overshoots the target abandons the attempt and starts
	over.

	Raises:
		GenerationError: If no attempt hits the target exactly.
	"""

	candidates = groups.get(group)

	for _ in range(chordhelix.constants.retries.FRAGMENT_FILL_RETRIES):

		parts: typing.List[str] = []
		ticks = 0

		while ticks < pattern_ticks:

			fragment = candidates[rng.randrange(len(candidates))]
			parts.append(fragment)
			ticks += chordhelix.pattern.get_string_ticks(fragment, ticks_per_beat)

		if ticks == pattern_ticks:
			return ",".join(parts)

	raise chordhelix.exceptions.GenerationError(f"Could not fill {pattern_ticks} ticks from the fragments of group {group!r}")


def _pause_token (pattern_ticks: int, ticks_per_beat: typing.Optional[int]) -> str:

	"""Return a pause token spanning ``pattern_ticks`` in the unit the result is parsed with."""

	if ticks_per_beat is None:
		return f"{chordhelix.pattern.PAUSE}/{pattern_ticks}"

	# Enough digits for the beats to convert back to exactly pattern_ticks.
	return f"{chordhelix.pattern.PAUSE}/{pattern_ticks / ticks_per_beat:.17g}"


def generate_pattern_string (
	pattern_of_patterns: str,
	groups: GroupFragmentSet,
	pattern_ticks: int,
	unique_pattern_parts: bool,
	rng: random.Random,
	ticks_per_beat: typing.Optional[int] = None
) -> str:

	"""Expand a pattern-of-patterns into one pattern string.

	Parameters:
		pattern_of_patterns: Comma-separated ``<group><digit>`` or ``-`` tokens.
		groups: Candidate fragments per group.
		pattern_ticks: Exact length of every part in ticks.
		unique_pattern_parts: Require each new variation of a group to differ
			from the group's earlier parts.
		rng: Random source for all fragment picks.
		ticks_per_beat: When given, fragment lengths are in beats.

	Raises:
		ParseError: On a malformed token.
		PatternReferenceError: On a token whose group has no fragments.
		GenerationError: If a part cannot be filled or no unused variation
			can be found.
	"""

	if pattern_ticks <= 0:
		raise ValueError("Pattern ticks must be positive")

	generated = _GeneratedParts()
	result: typing.List[str] = []

	for token in chordhelix.pattern.expand_pattern_string(pattern_of_patterns).split(","):

		token = token.strip()

		if token == chordhelix.pattern.PAUSE:
			result.append(_pause_token(pattern_ticks, ticks_per_beat))
			continue

		if len(token) != 2 or not token[1].isdigit():
			raise chordhelix.exceptions.ParseError(f"Pattern part {token!r} is invalid, expected a group character and a digit")

		if token in generated.token_parts:
			result.append(generated.token_parts[token])
			continue

		group = token[0]

		if group not in generated.base_parts:
			part = _fill_part(group, groups, pattern_ticks, rng, ticks_per_beat)
			generated.base_parts[group] = part

		else:

			for _ in range(chordhelix.constants.retries.VARIATION_RETRIES):

				part = _fill_part(group, groups, pattern_ticks, rng, ticks_per_beat)

				if not unique_pattern_parts or (group, part) not in generated.used:
					break

			else:
				raise chordhelix.exceptions.GenerationError(f"Could not create an unused variation of group {group!r} for {token}")

		logger.debug(f"Pattern {token}: {part}")

		generated.token_parts[token] = part
		generated.used.add((group, part))
		result.append(part)

	return ",".join(result)


class RandomFragmentPatternEngine (chordhelix.pattern_engines.PatternEngine):

	"""
	Renders a pattern built from random fragments, laid out by a pattern-of-patterns.
	"""

	def __init__ (
		self,
		pattern_string: str,
		groups: typing.Union[GroupFragmentSet, typing.Mapping[str, typing.Union[str, typing.Sequence[str]]]],
		pattern_ticks: int = 16,
		unique_pattern_parts: bool = True,
		ticks_per_beat: typing.Optional[int] = None
	) -> None:

		"""Initialize the engine.

		Parameters:
			pattern_string: The pattern-of-patterns, e.g. ``"A1,A2,A1,B1"``.
			groups: A ``GroupFragmentSet`` or a mapping accepted by
				``GroupFragmentSet.from_mapping``.
			pattern_ticks: Length of every part in ticks (default 16).
			unique_pattern_parts: Require variations of a group to differ
				(default True).
			ticks_per_beat: When given, fragment lengths are in beats.
		"""

		if pattern_ticks <= 0:
			raise ValueError("Pattern ticks must be positive")

		self.pattern_string = pattern_string
		self.groups = groups if isinstance(groups, GroupFragmentSet) else GroupFragmentSet.from_mapping(groups)
		self.pattern_ticks = pattern_ticks
		self.unique_pattern_parts = unique_pattern_parts
		self.ticks_per_beat = ticks_per_beat


	def render (self, structure: chordhelix.structure.SongStructure, seed: int, wildcards: str = "") -> chordhelix.pattern.Pattern:

		rng = random.Random(seed)

		text = generate_pattern_string(
			self.pattern_string,
			self.groups,
			self.pattern_ticks,
			self.unique_pattern_parts,
			rng,
			ticks_per_beat = self.ticks_per_beat
		)

		return chordhelix.pattern.Pattern.parse_string(
			text,
			ticks_per_beat = self.ticks_per_beat,
			wildcards = wildcards,
			max_velocity = structure.max_velocity
		)
