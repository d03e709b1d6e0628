"""Chord-pattern harmony engine.

A chord pattern is a comma-separated list of ``[+]<chord>/<beats>`` tokens.
The chord part is one of:

- a chord name (``Am``, ``F#``, ``Bb``),
- a random table number (``0``): a chord drawn from that table,
- a random table number with an exclusion (``0!1``): a chord drawn from table
  0 that differs from the chord at position 1,
- a backreference (``$1``): the chord at position 1 again.

A ``+`` in front of a token starts a new chord section. The first token always
starts one. The pattern repeats until the song is filled.

Random draws never repeat the previous chord, and the last token of the
pattern never repeats the first chord, so the loop point does not sound
stuck. All of these exclusions are checked together for every draw.

Example:
	```python
	engine = PatternHarmonyEngine(
		chord_patterns = ["Am/4,F/4,0/4,0!1/4,+$0/4,$1/4,G/4,E/4"],
		chord_random_tables = ["Am,F,G,C,Em,Dm"]
	)

	structure = chordhelix.structure.SongStructure.from_bars(16)
	timeline = engine.render(structure, seed=42)

	timeline.get_chord(0)          # Am
	timeline.get_chord_ticks(0)    # ticks until the next chord change
	```
"""

import dataclasses
import logging
import math
import random
import re
import typing

import chordhelix.chords
import chordhelix.constants
import chordhelix.constants.retries
import chordhelix.exceptions
import chordhelix.structure


logger = logging.getLogger(__name__)

SECTION_MARKER = "+"
BACKREFERENCE_MARKER = "$"

_TABLE_REFERENCE_RE = re.compile(r"^(?P<table>\d+)(?:!(?P<excluded>\d+))?$")


@dataclasses.dataclass(frozen=True)
class ChordPatternSpec:

	"""
	One candidate chord pattern, with optional per-pattern overrides.

	Attributes:
		pattern: The chord pattern string.
		minimize_chord_distance: Overrides the engine's setting when not ``None``.
		crossover_pitch: Overrides the engine's crossover pitch when not ``None``.
	"""

	pattern: str
	minimize_chord_distance: typing.Optional[bool] = None
	crossover_pitch: typing.Optional[int] = None


	def __post_init__ (self) -> None:

		if not self.pattern or not self.pattern.strip():
			raise chordhelix.exceptions.ParseError("Chord pattern is empty")


@dataclasses.dataclass(frozen=True)
class ChordRandomTable:

	"""
	An indexed palette of chord names for random draws.
	"""

	chords: typing.Tuple[str, ...]


	def __post_init__ (self) -> None:

		if not self.chords:
			raise chordhelix.exceptions.ParseError("Chord random table is empty")

		for name in self.chords:
			chordhelix.chords.parse_chord(name)


	@classmethod
	def parse (cls, text: str) -> "ChordRandomTable":

		"""Build a table from a comma-separated list such as ``"Am,F,G"``."""

		return cls(tuple(name.strip() for name in text.split(",")))


	def __len__ (self) -> int:

		return len(self.chords)


	def __getitem__ (self, index: int) -> str:

		return self.chords[index]


@dataclasses.dataclass(frozen=True)
class _ChordToken:

	"""A chord pattern token split into its parts."""

	section_start: bool
	reference: str
	beats: str


def _split_token (token: str) -> _ChordToken:

	"""Split ``[+]<chord>/<beats>`` into its parts."""

	text = token.strip()
	section_start = text.startswith(SECTION_MARKER)

	if section_start:
		text = text[len(SECTION_MARKER):]

	parts = text.split("/")

	if len(parts) != 2 or not parts[0] or not parts[1]:
		raise chordhelix.exceptions.ParseError(f"Invalid chord pattern token {token.strip()!r}, expected <chord>/<beats>")

	try:
		beats = float(parts[1])
	except ValueError:
		raise chordhelix.exceptions.ParseError(f"Invalid length in chord pattern token {token.strip()!r}") from None

	if not math.isfinite(beats):
		raise chordhelix.exceptions.ParseError(f"Invalid length in chord pattern token {token.strip()!r}")

	return _ChordToken(section_start=section_start, reference=parts[0], beats=parts[1])


def _parse_index (text: str, token: str) -> int:

	"""Parse a non-negative index from a reference."""

	if not text.isdigit():
		raise chordhelix.exceptions.ParseError(f"Invalid reference {token!r}")

	return int(text)


class HarmonyTimeline:

	"""
	The rendered harmony of a song, queried tick by tick.

	For every tick the timeline knows the chord, the number of ticks the chord
	still lasts (counting down to 1) and the number of ticks the chord section
	still lasts. Adjacent equal chords always form one run, even across a
	section boundary.

	Consider the section ``Am/16,F/16,F/16,Am/16`` played twice:

	tick  chord  chord ticks  section ticks
	   0     Am           16             64
	  16      F           32             48
	  48     Am           32             16
	  64     Am           16             64
	  80      F           32             48
	 112     Am           16             16
	"""

	def __init__ (
		self,
		chords: typing.Sequence[chordhelix.chords.Chord],
		chord_ticks: typing.Sequence[int],
		section_ticks: typing.Sequence[int]
	) -> None:

		if not (len(chords) == len(chord_ticks) == len(section_ticks)):
			raise ValueError("Harmony arrays must have the same length")

		self.chords: typing.Tuple[chordhelix.chords.Chord, ...] = tuple(chords)
		self.chord_ticks: typing.Tuple[int, ...] = tuple(chord_ticks)
		self.section_ticks: typing.Tuple[int, ...] = tuple(section_ticks)


	@property
	def ticks (self) -> int:

		return len(self.chords)


	def get_chord (self, tick: int) -> typing.Optional[chordhelix.chords.Chord]:

		"""Return the chord at ``tick``, or ``None`` outside the song."""

		if 0 <= tick < self.ticks:
			return self.chords[tick]

		return None


	def get_chord_ticks (self, tick: int) -> int:

		"""Return how many ticks the chord at ``tick`` still lasts, or 0 outside the song."""

		if 0 <= tick < self.ticks:
			return self.chord_ticks[tick]

		return 0


	def get_chord_section_ticks (self, tick: int) -> int:

		"""Return how many ticks the section at ``tick`` still lasts, or 0 outside the song."""

		if 0 <= tick < self.ticks:
			return self.section_ticks[tick]

		return 0


	def chord_runs (self) -> typing.List[typing.Tuple[int, chordhelix.chords.Chord, int]]:

		"""Return ``(start_tick, chord, length)`` for every chord run."""

		runs: typing.List[typing.Tuple[int, chordhelix.chords.Chord, int]] = []
		tick = 0

		while tick < self.ticks:
			length = self.chord_ticks[tick]
			runs.append((tick, self.chords[tick], length))
			tick += length

		return runs


	def dump_chords (self) -> str:

		"""Return all chord runs as ``Am/16,F/16,...`` with lengths in ticks."""

		return ",".join(f"{chord}/{length}" for _, chord, length in self.chord_runs())


	def get_chord_section_start_ticks (self) -> typing.List[int]:

		"""Return the first tick of every chord section."""

		starts: typing.List[int] = []
		tick = 0

		while tick < self.ticks:
			starts.append(tick)
			tick += self.section_ticks[tick]

		return starts


	def get_chord_section_count (self) -> int:

		return len(self.get_chord_section_start_ticks())


	def get_chord_section_string (self, tick: int) -> typing.Optional[str]:

		"""Return the chords of the section starting at ``tick`` as ``Am/16,F/16``.

		A chord that runs past the end of the section is cut at the section end.
		"""

		if tick < 0 or tick >= self.ticks:
			return None

		end = tick + self.section_ticks[tick]
		parts: typing.List[str] = []

		while tick < end:
			length = self.chord_ticks[tick]
			parts.append(f"{self.chords[tick]}/{min(end - tick, length)}")
			tick += length

		return ",".join(parts)


	def get_chord_section_number (self, tick: int) -> int:

		"""Return the index of the section containing ``tick``, or -1 outside the song."""

		if tick < 0 or tick >= self.ticks:
			return -1

		number = 0

		for start in self.get_chord_section_start_ticks()[1:]:

			if start > tick:
				break

			number += 1

		return number


	def get_chord_section_tick (self, section: int) -> int:

		"""Return the first tick of section number ``section``, or -1 if there is no such section."""

		starts = self.get_chord_section_start_ticks()

		if 0 <= section < len(starts):
			return starts[section]

		return -1


	def get_distinct_chord_section_count (self) -> int:

		"""Return how many sections differ in their chord content."""

		return len({self.get_chord_section_string(tick) for tick in self.get_chord_section_start_ticks()})


	def check_sanity (self) -> None:

		"""Verify that the three arrays agree with each other.

		Raises:
			GenerationError: If a counter does not count down by one, does not
				end at 1, or a chord changes anywhere other than at the end of
				its run.
		"""

		last_chord: typing.Optional[chordhelix.chords.Chord] = None
		last_chord_ticks = 1
		last_section_ticks = 1

		for tick in range(self.ticks):

			chord = self.chords[tick]
			chord_ticks = self.chord_ticks[tick]
			section_ticks = self.section_ticks[tick]

			if chord is None:
				raise chordhelix.exceptions.GenerationError(f"No chord at tick {tick}")

			if chord_ticks <= 0:
				raise chordhelix.exceptions.GenerationError(f"Chord ticks <= 0 at tick {tick}")

			if last_chord_ticks > 1 and chord_ticks != last_chord_ticks - 1:
				raise chordhelix.exceptions.GenerationError(f"Chord ticks not decremented at tick {tick}")

			if section_ticks <= 0:
				raise chordhelix.exceptions.GenerationError(f"Chord section ticks <= 0 at tick {tick}")

			if last_section_ticks > 1 and section_ticks != last_section_ticks - 1:
				raise chordhelix.exceptions.GenerationError(f"Chord section ticks not decremented at tick {tick}")

			if chord != last_chord and last_chord_ticks != 1:
				raise chordhelix.exceptions.GenerationError(f"Chord changes unexpectedly from {last_chord} to {chord} at tick {tick}")

			if chord == last_chord and last_chord_ticks == 1:
				raise chordhelix.exceptions.GenerationError(f"Chord was not changed at tick {tick}")

			last_chord = chord
			last_chord_ticks = chord_ticks
			last_section_ticks = section_ticks

		if last_chord_ticks != 1:
			raise chordhelix.exceptions.GenerationError("Chord ticks is not 1 at the last tick")

		if last_section_ticks != 1:
			raise chordhelix.exceptions.GenerationError("Chord section ticks is not 1 at the last tick")


class PatternHarmonyEngine:

	"""
	Builds a song's harmony from one of several chord patterns.
	"""

	def __init__ (
		self,
		chord_patterns: typing.Sequence[typing.Union[str, ChordPatternSpec]],
		chord_random_tables: typing.Sequence[typing.Union[str, typing.Sequence[str], ChordRandomTable]] = (),
		minimize_chord_distance: bool = True,
		crossover_pitch: int = chordhelix.constants.DEFAULT_CROSSOVER_PITCH
	) -> None:

		"""Initialize the engine.

		Parameters:
			chord_patterns: Candidate chord patterns. One is picked at random
				per render. Plain strings use the engine-wide settings.
			chord_random_tables: Random chord tables, referenced by index.
				Each is a ``ChordRandomTable``, a list of chord names, or a
				comma-separated string.
			minimize_chord_distance: Voice every chord as close as possible
				to the first chord of the song (default True).
			crossover_pitch: Highest pitch class that stays in the upper
				octave when a chord name is parsed (default 2).
		"""

		if not chord_patterns:
			logger.error("PatternHarmonyEngine requires at least one chord pattern")
			raise ValueError("PatternHarmonyEngine requires at least one chord pattern")

		self.chord_patterns: typing.List[ChordPatternSpec] = [
			pattern if isinstance(pattern, ChordPatternSpec) else ChordPatternSpec(pattern)
			for pattern in chord_patterns
		]

		self.chord_random_tables: typing.List[ChordRandomTable] = []

		for table in chord_random_tables:

			if isinstance(table, ChordRandomTable):
				self.chord_random_tables.append(table)
			elif isinstance(table, str):
				self.chord_random_tables.append(ChordRandomTable.parse(table))
			else:
				self.chord_random_tables.append(ChordRandomTable(tuple(table)))

		self.minimize_chord_distance = minimize_chord_distance
		self.crossover_pitch = crossover_pitch


	def render (self, structure: chordhelix.structure.SongStructure, seed: int) -> HarmonyTimeline:

		"""Render the harmony for a whole song.

		Parameters:
			structure: Song length and resolution.
			seed: Seed for every random decision of this render.

		Raises:
			ParseError: On malformed chord pattern tokens or chord names.
			PatternReferenceError: On out-of-range backreferences, tables or
				exclusion positions.
			GenerationError: If random table draws keep failing.
		"""

		rng = random.Random(seed)

		spec = self.chord_patterns[rng.randrange(len(self.chord_patterns))]
		logger.debug(f"Using harmony pattern {spec.pattern}")

		pattern = self.resolve_chord_pattern(spec, rng)
		logger.debug(f"Resolved harmony pattern {pattern}")

		timeline = self._build_timeline(pattern, spec, structure)
		logger.debug(f"Chords: {timeline.dump_chords()}")

		return timeline


	def resolve_chord_pattern (self, spec: ChordPatternSpec, rng: random.Random) -> str:

		"""Replace backreferences and random table numbers with chord names.

		The pattern is resolved once, left to right. If a random draw cannot
		satisfy its exclusions within the retry budget the whole pass is
		discarded and run again; a second failure raises ``GenerationError``.
		"""

		tokens = [_split_token(token) for token in spec.pattern.split(",")]
		attempts = chordhelix.constants.retries.RANDOM_TABLE_RESTARTS + 1

		for attempt in range(attempts):

			resolved = self._resolve_once(tokens, rng)

			if resolved is not None:
				return resolved

			if attempt + 1 < attempts:
				logger.warning(f"Random chord table draws exhausted for {spec.pattern!r}, starting again")

		raise chordhelix.exceptions.GenerationError(f"Could not resolve random chords of pattern {spec.pattern!r}")


	def _resolve_once (self, tokens: typing.List[_ChordToken], rng: random.Random) -> typing.Optional[str]:

		"""Run one resolution pass. Returns ``None`` when a draw runs out of retries."""

		resolved: typing.List[str] = []
		parts: typing.List[str] = []
		last_position = len(tokens) - 1

		for position, token in enumerate(tokens):

			reference = token.reference

			if reference.startswith(BACKREFERENCE_MARKER):

				index = _parse_index(reference[len(BACKREFERENCE_MARKER):], reference)

				if index >= len(resolved):
					raise chordhelix.exceptions.PatternReferenceError(f"Invalid backreference {reference!r} at position {position}")

				name = resolved[index]

			elif reference[0].isalpha():
				chordhelix.chords.parse_chord(reference)
				name = reference

			else:
				drawn = self._draw_from_table(reference, position == last_position, resolved, rng)

				if drawn is None:
					return None

				name = drawn

			resolved.append(name)
			parts.append(f"{SECTION_MARKER if token.section_start else ''}{name}/{token.beats}")

		return ",".join(parts)


	def _draw_from_table (
		self,
		reference: str,
		is_last: bool,
		resolved: typing.List[str],
		rng: random.Random
	) -> typing.Optional[str]:

		"""Draw a chord name from a random table, honouring every exclusion."""

		match = _TABLE_REFERENCE_RE.match(reference)

		if match is None:
			raise chordhelix.exceptions.ParseError(f"Invalid chord reference {reference!r}")

		table_index = int(match.group("table"))

		if table_index >= len(self.chord_random_tables):
			raise chordhelix.exceptions.PatternReferenceError(f"Random chord table {table_index} does not exist")

		excluded: typing.List[chordhelix.chords.Chord] = []

		if resolved:
			excluded.append(chordhelix.chords.parse_chord(resolved[-1]))

			# The last chord must not repeat the first one, or the loop point stands still.
			if is_last:
				excluded.append(chordhelix.chords.parse_chord(resolved[0]))

		if match.group("excluded") is not None:

			excluded_index = int(match.group("excluded"))

			if excluded_index >= len(resolved):
				raise chordhelix.exceptions.PatternReferenceError(f"Invalid exclusion position {excluded_index} in {reference!r}")

			excluded.append(chordhelix.chords.parse_chord(resolved[excluded_index]))

		table = self.chord_random_tables[table_index]

		for _ in range(chordhelix.constants.retries.RANDOM_TABLE_RETRIES):

			name = table[rng.randrange(len(table))]
			chord = chordhelix.chords.parse_chord(name)

			if not any(chord.equals_normalized(other) for other in excluded):
				return name

		return None


	def _build_timeline (
		self,
		pattern: str,
		spec: ChordPatternSpec,
		structure: chordhelix.structure.SongStructure
	) -> HarmonyTimeline:

		"""Stamp a resolved chord pattern across the song's ticks."""

		if not pattern.startswith(SECTION_MARKER):
			pattern = SECTION_MARKER + pattern

		tokens = [_split_token(token) for token in pattern.split(",")]

		crossover_pitch = spec.crossover_pitch if spec.crossover_pitch is not None else self.crossover_pitch
		minimize = spec.minimize_chord_distance if spec.minimize_chord_distance is not None else self.minimize_chord_distance

		ticks = structure.ticks
		chords: typing.List[chordhelix.chords.Chord] = []
		chord_ticks: typing.List[int] = []
		sections: typing.List[int] = []

		tick = 0
		position = 0
		section_length = 0
		first_chord: typing.Optional[chordhelix.chords.Chord] = None

		while tick < ticks:

			token = tokens[position % len(tokens)]

			try:
				length = int(float(token.beats) * structure.ticks_per_beat + 0.5)
			except OverflowError:
				raise chordhelix.exceptions.ParseError(f"Chord length {token.beats!r} beats is too long") from None

			if length <= 0:
				raise chordhelix.exceptions.ParseError(f"Chord length must be positive, got {token.beats!r} beats")

			if token.section_start:

				if section_length > 0:
					sections.append(section_length)

				section_length = 0

			chord = chordhelix.chords.parse_chord(token.reference, crossover_pitch)

			if first_chord is None:
				first_chord = chord

			if minimize:
				chord = chord.find_chord_closest_to(first_chord)

			end = min(tick + length, ticks)

			for t in range(tick, end):
				chords.append(chord)
				chord_ticks.append(end - t)

			section_length += end - tick
			tick = end
			position += 1

		_merge_adjacent_chords(chords, chord_ticks)

		sections.append(section_length)
		logger.debug(f"Chord sections: {len(sections)}")

		section_ticks: typing.List[int] = []

		for length in sections:
			section_ticks.extend(range(length, 0, -1))

		timeline = HarmonyTimeline(chords, chord_ticks, section_ticks)
		timeline.check_sanity()

		return timeline


def _merge_adjacent_chords (chords: typing.List[chordhelix.chords.Chord], chord_ticks: typing.List[int]) -> None:

	"""Join adjacent runs of equal chords into one run, in place.

	Runs are compared ignoring octave. A merged run takes the chord of its
	first tick throughout.
	"""

	ticks = len(chords)
	tick = 0

	while tick < ticks:

		end = tick + chord_ticks[tick]

		while end < ticks and chords[end].equals_normalized(chords[tick]):
			end += chord_ticks[end]

		if end != tick + chord_ticks[tick]:

			for t in range(tick, end):
				chords[t] = chords[tick]
				chord_ticks[t] = end - t

		tick = end
