"""Tick-based note patterns and the pattern mini-language.

A pattern is an ordered list of entries, each one a note, a wildcard or a
pause spanning a whole number of ticks. Patterns are written as
comma-separated tokens:

	<pitch|wildcard|->[~][/<length>][:<velocity>]

- ``0``, ``7``, ``-5``: a note at that pitch offset.
- ``-``: a pause.
- ``#``, ``+`` (or any single character the caller declares): a wildcard,
  resolved to a pitch later on.
- ``~``: legato. The note is held into the next note instead of re-struck.
- ``/<length>``: ticks, or beats when the caller passes ``ticks_per_beat``.
  Defaults to 1.
- ``:<velocity>``: defaults to the song's maximum velocity.

Example:
	```python
	pattern = Pattern.parse_string("0/3,-/5")
	pattern.ticks                 # → 8
	pattern[0].pitch              # → 0
	pattern[1].is_pause           # → True

	Pattern.parse_string("0~/1.5,#/0.5:80", ticks_per_beat=4, wildcards="#")
	```
"""

import dataclasses
import math
import re
import typing

import chordhelix.constants.velocity
import chordhelix.exceptions


PAUSE = "-"
LEGATO = "~"

_TOKEN_RE = re.compile(
	r"^(?P<value>-?\d+|[^\s\d~/:,])(?P<legato>~?)(?:/(?P<length>[^:/]+))?(?::(?P<velocity>-?\d+))?$"
)

_REPEAT_RE = re.compile(r"^(?P<body>.*)\*(?P<count>\d+)$", re.DOTALL)


@dataclasses.dataclass(frozen=True)
class PatternEntry:

	"""
	One slot of a pattern.

	A pause has neither pitch nor wildcard and a velocity of 0. A wildcard
	entry carries the wildcard character instead of a pitch.
	"""

	ticks: int
	pitch: typing.Optional[int] = None
	wildcard: typing.Optional[str] = None
	velocity: int = 0
	legato: bool = False


	def __post_init__ (self) -> None:

		if self.ticks < 1:
			raise chordhelix.exceptions.ParseError(f"Pattern entry length must be positive, got {self.ticks}")


	@classmethod
	def pause (cls, ticks: int) -> "PatternEntry":

		"""Create a pause entry."""

		return cls(ticks=ticks)


	@property
	def is_pause (self) -> bool:

		return self.velocity <= 0 or (self.pitch is None and self.wildcard is None)


	@property
	def is_wildcard (self) -> bool:

		return self.wildcard is not None and not self.is_pause


	@property
	def is_note (self) -> bool:

		return self.pitch is not None and not self.is_pause


	def to_token (self, max_velocity: int = chordhelix.constants.velocity.MAX_VELOCITY) -> str:

		"""Serialize this entry as a pattern token with its length in ticks."""

		if self.is_pause:
			return f"{PAUSE}/{self.ticks}"

		value = self.wildcard if self.wildcard is not None else str(self.pitch)
		legato = LEGATO if self.legato else ""
		token = f"{value}{legato}/{self.ticks}"

		if self.velocity != max_velocity:
			token += f":{self.velocity}"

		return token


class Pattern:

	"""
	An immutable sequence of pattern entries with a known total tick count.
	"""

	def __init__ (self, entries: typing.Iterable[PatternEntry]) -> None:

		"""
		Initialize a pattern from its entries. At least one entry is required.
		"""

		self.entries: typing.Tuple[PatternEntry, ...] = tuple(entries)

		if not self.entries:
			raise chordhelix.exceptions.ParseError("A pattern needs at least one entry")

		self.ticks: int = sum(entry.ticks for entry in self.entries)


	@classmethod
	def parse_string (
		cls,
		text: str,
		ticks_per_beat: typing.Optional[int] = None,
		wildcards: str = "",
		max_velocity: int = chordhelix.constants.velocity.MAX_VELOCITY
	) -> "Pattern":

		"""Parse a pattern string.

		Parameters:
			text: Comma-separated pattern tokens.
			ticks_per_beat: When given, lengths are beats and are converted
				with ``int(beats * ticks_per_beat + 0.5)``. Otherwise lengths
				are integer ticks.
			wildcards: Characters that may stand in for a pitch.
			max_velocity: Default velocity and upper velocity bound.

		Raises:
			ParseError: On malformed tokens, unknown wildcard characters,
				non-positive lengths or out-of-range velocities.
		"""

		if text is None or not text.strip():
			raise chordhelix.exceptions.ParseError("Pattern string is empty")

		return cls(
			_parse_token(token, ticks_per_beat, wildcards, max_velocity)
			for token in text.split(",")
		)


	@classmethod
	def concat (cls, *patterns: typing.Optional["Pattern"]) -> "Pattern":

		"""Join patterns end to end, skipping ``None``."""

		return cls(entry for pattern in patterns if pattern is not None for entry in pattern)


	def resolve_wildcards (self, mapping: typing.Mapping[str, int]) -> "Pattern":

		"""Return a copy with every wildcard entry turned into a note.

		Raises:
			PatternReferenceError: If a wildcard has no entry in ``mapping``.
		"""

		entries: typing.List[PatternEntry] = []

		for entry in self.entries:

			if entry.wildcard is None:
				entries.append(entry)
				continue

			if entry.wildcard not in mapping:
				raise chordhelix.exceptions.PatternReferenceError(f"No pitch given for wildcard {entry.wildcard!r}")

			entries.append(dataclasses.replace(entry, pitch=mapping[entry.wildcard], wildcard=None))

		return Pattern(entries)


	def to_string (self, max_velocity: int = chordhelix.constants.velocity.MAX_VELOCITY) -> str:

		"""Serialize the pattern with all lengths in ticks."""

		return ",".join(entry.to_token(max_velocity) for entry in self.entries)


	def __len__ (self) -> int:

		return len(self.entries)


	def __iter__ (self) -> typing.Iterator[PatternEntry]:

		return iter(self.entries)


	def __getitem__ (self, index: int) -> PatternEntry:

		return self.entries[index]


	def __eq__ (self, other: object) -> bool:

		if not isinstance(other, Pattern):
			return NotImplemented

		return self.entries == other.entries


	def __hash__ (self) -> int:

		return hash(self.entries)


	def __str__ (self) -> str:

		return self.to_string()


	def __repr__ (self) -> str:

		return f"Pattern(ticks={self.ticks}, {self.to_string()!r})"


def _parse_length (length: typing.Optional[str], ticks_per_beat: typing.Optional[int], token: str) -> int:

	"""Convert the length part of a token to ticks."""

	if length is None:
		ticks = ticks_per_beat if ticks_per_beat is not None else 1

	else:

		try:
			if ticks_per_beat is not None:
				beats = float(length)

				if not math.isfinite(beats):
					raise ValueError(length)

				ticks = int(beats * ticks_per_beat + 0.5)
			else:
				ticks = int(length)

		except (ValueError, OverflowError):
			raise chordhelix.exceptions.ParseError(f"Invalid length in pattern token {token!r}") from None

	if ticks <= 0:
		raise chordhelix.exceptions.ParseError(f"Length must be positive in pattern token {token!r}")

	return ticks


def _parse_token (token: str, ticks_per_beat: typing.Optional[int], wildcards: str, max_velocity: int) -> PatternEntry:

	"""Parse one pattern token into an entry."""

	token = token.strip()
	match = _TOKEN_RE.match(token)

	if match is None:
		raise chordhelix.exceptions.ParseError(f"Invalid pattern token {token!r}")

	ticks = _parse_length(match.group("length"), ticks_per_beat, token)
	value = match.group("value")

	if value == PAUSE:
		return PatternEntry.pause(ticks)

	velocity = max_velocity

	if match.group("velocity") is not None:

		velocity = int(match.group("velocity"))

		if velocity < 0 or velocity > max_velocity:
			raise chordhelix.exceptions.ParseError(f"Velocity must be between 0 and {max_velocity} in pattern token {token!r}")

		if velocity == 0:
			return PatternEntry.pause(ticks)

	legato = bool(match.group("legato"))

	if value.lstrip("-").isdigit():
		return PatternEntry(ticks=ticks, pitch=int(value), velocity=velocity, legato=legato)

	if value not in wildcards:
		raise chordhelix.exceptions.ParseError(f"Unknown wildcard {value!r} in pattern token {token!r}")

	return PatternEntry(ticks=ticks, wildcard=value, velocity=velocity, legato=legato)


def get_string_ticks (text: str, ticks_per_beat: typing.Optional[int] = None) -> int:

	"""Return the total length of a pattern string in ticks.

	Only the length parts are read, so this is cheap enough to call for every
	candidate fragment during random generation.

	Example:
		```python
		get_string_ticks("0/3,-/5")                      # → 8
		get_string_ticks("0,1,2")                        # → 3
		get_string_ticks("0/1.5,-/0.5", ticks_per_beat=4)  # → 8
		```
	"""

	if text is None or not text.strip():
		raise chordhelix.exceptions.ParseError("Pattern string is empty")

	total = 0

	for token in text.split(","):

		body = token.split(":", 1)[0]
		parts = body.split("/")

		if len(parts) > 2:
			raise chordhelix.exceptions.ParseError(f"Invalid pattern token {token.strip()!r}")

		total += _parse_length(parts[1].strip() if len(parts) > 1 else None, ticks_per_beat, token.strip())

	return total


def split_alternatives (text: str, separator: str = "|", escape: str = "\\") -> typing.List[str]:

	"""Split a list of alternatives on ``separator``.

	The separator can be escaped with ``escape``; a doubled escape character
	yields the escape character itself.

	Raises:
		ParseError: If the text ends with a lone escape character.

	Example:
		```python
		split_alternatives("0,-|1,-,2")    # ["0,-", "1,-,2"]
		split_alternatives("a\\|b|c")      # ["a|b", "c"]
		```
	"""

	parts: typing.List[str] = []
	current: typing.List[str] = []
	escaped = False

	for char in text:

		if escaped:
			current.append(char)
			escaped = False

		elif char == escape:
			escaped = True

		elif char == separator:
			parts.append("".join(current))
			current = []

		else:
			current.append(char)

	if escaped:
		raise chordhelix.exceptions.ParseError(f"Illegal trailing escape character in {text!r}")

	parts.append("".join(current))

	return parts


def expand_pattern_string (text: str) -> str:

	"""Expand repetition shorthand into the plain token list.

	- ``token*N`` repeats a single token N times.
	- ``(token,token)*N`` repeats a group N times. Groups nest.

	Text without shorthand comes back unchanged.

	Example:
		```python
		expand_pattern_string("0,-*3")             # "0,-,-,-"
		expand_pattern_string("(0,-)*2,5/2")       # "0,-,0,-,5/2"
		expand_pattern_string("((0,1)*2,-)*2")     # "0,1,0,1,-,0,1,0,1,-"
		```
	"""

	return ",".join(_expand_items(text))


def _split_top_level (text: str) -> typing.List[str]:

	"""Split on commas that are not inside parentheses."""

	items: typing.List[str] = []
	current: typing.List[str] = []
	depth = 0

	for char in text:

		if char == "(":
			depth += 1

		elif char == ")":
			depth -= 1

			if depth < 0:
				raise chordhelix.exceptions.ParseError(f"Unexpected closing parenthesis in {text!r}")

		if char == "," and depth == 0:
			items.append("".join(current))
			current = []

		else:
			current.append(char)

	if depth != 0:
		raise chordhelix.exceptions.ParseError(f"Missing closing parenthesis in {text!r}")

	items.append("".join(current))

	return items


def _expand_items (text: str) -> typing.List[str]:

	"""Recursively expand one comma-separated level."""

	tokens: typing.List[str] = []

	for item in _split_top_level(text):

		item = item.strip()
		count = 1
		match = _REPEAT_RE.match(item)

		if match is not None:
			item = match.group("body").strip()
			count = int(match.group("count"))

			if count < 1:
				raise chordhelix.exceptions.ParseError(f"Repeat count must be positive in {text!r}")

		if item.startswith("(") and item.endswith(")"):
			body = _expand_items(item[1:-1])
		elif "(" in item or ")" in item:
			raise chordhelix.exceptions.ParseError(f"Misplaced parenthesis in {item!r}")
		else:
			body = [item]

		tokens.extend(body * count)

	return tokens
