import dataclasses

import chordhelix.constants
import chordhelix.constants.velocity


@dataclasses.dataclass(frozen=True)
class SongStructure:

	"""
	Song-wide values shared by every render call of one song.

	Attributes:
		ticks: Total number of ticks in the song.
		ticks_per_beat: Number of ticks in one beat.
		max_velocity: The velocity that pattern entries default to. Entry
			velocities are relative to this value.
	"""

	ticks: int
	ticks_per_beat: int = chordhelix.constants.DEFAULT_TICKS_PER_BEAT
	max_velocity: int = chordhelix.constants.velocity.MAX_VELOCITY


	def __post_init__ (self) -> None:

		if self.ticks <= 0:
			raise ValueError("Song ticks must be positive")

		if self.ticks_per_beat <= 0:
			raise ValueError("Ticks per beat must be positive")

		if self.max_velocity <= 0:
			raise ValueError("Maximum velocity must be positive")


	@classmethod
	def from_bars (cls, bars: int, beats_per_bar: int = 4, ticks_per_beat: int = chordhelix.constants.DEFAULT_TICKS_PER_BEAT, max_velocity: int = chordhelix.constants.velocity.MAX_VELOCITY) -> "SongStructure":

		"""Build a structure from a bar count.

		Example:
			```python
			structure = SongStructure.from_bars(8)   # 8 bars of 4/4 at 4 ticks per beat
			structure.ticks                          # → 128
			```
		"""

		if bars <= 0 or beats_per_bar <= 0:
			raise ValueError("Bars and beats per bar must be positive")

		return cls(
			ticks = bars * beats_per_bar * ticks_per_beat,
			ticks_per_beat = ticks_per_beat,
			max_velocity = max_velocity
		)
