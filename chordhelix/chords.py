"""Chord names, pitch classes, and the `Chord` value type.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to note names
- `CHORD_INTERVALS`: Maps chord quality names to interval lists (semitones from root)
- `CHORD_SUFFIX`: Maps chord quality names to human-readable suffixes

Module-level helpers:
- `parse_chord(text, crossover_pitch)`: Parse a chord name such as `"Am"` or `"F#"`.
  Raises `chordhelix.exceptions.ParseError` for anything else.

A chord is a root pitch class plus a quality, voiced at a particular octave.
The octave is voicing metadata: `equals_normalized()` ignores it, while `==`
does not.
"""

import dataclasses
import re
import typing

import chordhelix.constants
import chordhelix.exceptions


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 4, 7],
	"minor": [0, 3, 7],
}

CHORD_SUFFIX: typing.Dict[str, str] = {
	"major": "",
	"minor": "m",
}

_CHORD_NAME_RE = re.compile(r"^(?P<note>[A-G][#b]?)(?P<minor>m?)$")


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	Represents a chord as a root pitch class, a quality and an octave shift.

	The absolute root pitch is ``root_pc + 12 * octave``, relative to the
	track's base pitch. ``text`` keeps the name the chord was parsed from and
	takes no part in comparisons.
	"""

	root_pc: int
	quality: str
	octave: int = 0
	text: str = dataclasses.field(default="", compare=False)


	@property
	def root_pitch (self) -> int:

		"""Return the root pitch including the octave shift."""

		return self.root_pc + 12 * self.octave


	def intervals (self) -> typing.List[int]:

		"""
		Return the chord intervals for this chord quality.
		"""

		if self.quality not in CHORD_INTERVALS:
			raise ValueError(f"Unknown chord quality: {self.quality}")

		return CHORD_INTERVALS[self.quality]


	def pitches (self, base_pitch: int = chordhelix.constants.DEFAULT_BASE_PITCH) -> typing.List[int]:

		"""Return the root-position triad as MIDI note numbers.

		Parameters:
			base_pitch: MIDI note that pitch 0 maps to (default 60, middle C).

		Example:
			```python
			parse_chord("C").pitches()    # [60, 64, 67]
			parse_chord("Am").pitches()   # [57, 60, 64] - A is voiced below C
			```
		"""

		root = base_pitch + self.root_pitch

		return [root + interval for interval in self.intervals()]


	def equals_normalized (self, other: typing.Optional["Chord"]) -> bool:

		"""Return True if both chords have the same root pitch class and quality.

		The octave shift is ignored, so ``Am`` voiced at -3 and ``Am`` voiced
		at 9 are equal here, although ``==`` tells them apart.
		"""

		if other is None:
			return False

		return self.root_pc == other.root_pc and self.quality == other.quality


	def distance_to (self, reference: "Chord") -> int:

		"""Return the distance in semitones between the two root pitches."""

		return abs(self.root_pitch - reference.root_pitch)


	def find_chord_closest_to (self, reference: "Chord") -> "Chord":

		"""Return the octave-shifted copy of this chord nearest to ``reference``.

		Only whole octaves are tried. When two voicings are equally close the
		one with the smaller shift wins, so an unshifted chord is never moved
		for nothing.

		Example:
			```python
			g = parse_chord("G", crossover_pitch=11)   # G at 7
			c = parse_chord("C")                       # C at 0
			g.find_chord_closest_to(c).root_pitch      # → -5
			```
		"""

		diff = reference.root_pitch - self.root_pitch
		lower = diff // 12

		best_octaves = 0
		best_distance = abs(diff)

		for octaves in (lower, lower + 1):

			distance = abs(diff - 12 * octaves)

			if distance < best_distance or (distance == best_distance and abs(octaves) < abs(best_octaves)):
				best_octaves = octaves
				best_distance = distance

		if best_octaves == 0:
			return self

		return dataclasses.replace(self, octave=self.octave + best_octaves)


	def name (self) -> str:

		"""
		Return a human-friendly chord name.
		"""

		root_name = PC_TO_NOTE_NAME[self.root_pc % 12]
		suffix = CHORD_SUFFIX.get(self.quality, "")

		return f"{root_name}{suffix}"


	def __str__ (self) -> str:

		return self.name()


def parse_chord (text: str, crossover_pitch: int = chordhelix.constants.DEFAULT_CROSSOVER_PITCH) -> Chord:

	"""Parse a chord name into a ``Chord``.

	A name is a note letter (A-G), an optional ``#`` or ``b`` and an optional
	trailing ``m`` for minor. Roots whose pitch class is above
	``crossover_pitch`` are voiced one octave down.

	Parameters:
		text: The chord name, e.g. ``"Am"``, ``"F#"``, ``"Bbm"``.
		crossover_pitch: Highest pitch class that stays in the upper octave.

	Raises:
		ParseError: If the text is not a chord name.

	Example:
		```python
		parse_chord("Am")          # Chord(root_pc=9, quality="minor", octave=-1)
		parse_chord("D")           # Chord(root_pc=2, quality="major", octave=0)
		parse_chord("Am", 11)      # Chord(root_pc=9, quality="minor", octave=0)
		```
	"""

	match = _CHORD_NAME_RE.match(text.strip()) if text is not None else None

	# "Cb", "E#" and friends match the pattern but have no table entry.
	root_pc = NOTE_NAME_TO_PC.get(match.group("note")) if match is not None else None

	if root_pc is None:
		raise chordhelix.exceptions.ParseError(f"Invalid chord name: {text!r}")

	quality = "minor" if match.group("minor") else "major"
	octave = -1 if root_pc > crossover_pitch else 0

	return Chord(root_pc=root_pc, quality=quality, octave=octave, text=text.strip())
