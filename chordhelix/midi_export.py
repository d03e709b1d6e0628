"""Offline MIDI file export.

Turns a rendered harmony and a set of rendered patterns into a type-1 MIDI
file: one track holding the tempo and the chords, plus one track per pattern.
Patterns loop until the song ends. Pattern pitches are offsets from the track's
base pitch and, unless a track opts out, follow the root of the current chord.
"""

import dataclasses
import logging
import typing

import mido

import chordhelix.constants
import chordhelix.constants.velocity
import chordhelix.harmony
import chordhelix.pattern
import chordhelix.structure


logger = logging.getLogger(__name__)

# Resolution of the written file.
MIDI_TICKS_PER_BEAT = 480

MIDI_NOTE_MIN = 0
MIDI_NOTE_MAX = 127
MIDI_VELOCITY_MAX = 127

# Sort order of events that fall on the same tick.
_ORDER_NOTE_OFF = 0
_ORDER_NOTE_ON = 1
_ORDER_LEGATO_OFF = 2


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""A note on or note off at an absolute song tick."""

	tick: int
	message_type: str
	note: int
	velocity: int = 0


@dataclasses.dataclass
class TrackSpec:

	"""
	One exported pattern track.

	Attributes:
		name: Track name written to the file.
		channel: MIDI channel, 0-15.
		pattern: The rendered pattern.
		base_pitch: MIDI note that pattern pitch 0 maps to.
		wildcards: Semitone offset for each wildcard character in the pattern.
		follow_chords: Transpose notes by the root of the current chord.
	"""

	name: str
	channel: int
	pattern: chordhelix.pattern.Pattern
	base_pitch: int = chordhelix.constants.DEFAULT_BASE_PITCH
	wildcards: typing.Dict[str, int] = dataclasses.field(default_factory=dict)
	follow_chords: bool = True


	def __post_init__ (self) -> None:

		if not 0 <= self.channel <= 15:
			raise ValueError(f"MIDI channel must be between 0 and 15, got {self.channel}")


def pattern_events (
	pattern: chordhelix.pattern.Pattern,
	ticks: int,
	harmony: typing.Optional[chordhelix.harmony.HarmonyTimeline] = None,
	base_pitch: int = chordhelix.constants.DEFAULT_BASE_PITCH,
	follow_chords: bool = True,
	wildcards: typing.Optional[typing.Mapping[str, int]] = None
) -> typing.List[NoteEvent]:

	"""Loop a pattern over ``ticks`` song ticks and return its note events.

	A legato note is held until the next entry starts. When that entry is a
	note of another pitch, the held note is released just after the new note
	starts, so the two overlap and a synthesizer can glide between them. A
	note of the same pitch releases the held note first.

	Notes that fall outside the MIDI range are left out.

	Raises:
		PatternReferenceError: If the pattern holds a wildcard with no
			offset in ``wildcards``.
	"""

	pattern = pattern.resolve_wildcards(wildcards or {})

	keyed: typing.List[typing.Tuple[int, int, NoteEvent]] = []
	held: typing.Optional[int] = None
	tick = 0
	index = 0

	while tick < ticks:

		entry = pattern[index % len(pattern)]
		length = min(entry.ticks, ticks - tick)

		note: typing.Optional[int] = None

		if entry.is_note:

			note = base_pitch + entry.pitch

			if follow_chords and harmony is not None:
				chord = harmony.get_chord(tick)

				if chord is not None:
					note += chord.root_pitch

			if not MIDI_NOTE_MIN <= note <= MIDI_NOTE_MAX:
				logger.debug(f"Skipping note {note} at tick {tick}, outside the MIDI range")
				note = None

		if note is not None:
			keyed.append((tick, _ORDER_NOTE_ON, NoteEvent(tick, "note_on", note, entry.velocity)))

		if held is not None:
			# A repeated pitch cannot overlap itself, so it is released first.
			order = _ORDER_LEGATO_OFF if note is not None and note != held else _ORDER_NOTE_OFF
			keyed.append((tick, order, NoteEvent(tick, "note_off", held)))
			held = None

		if note is not None:

			if entry.legato:
				held = note
			else:
				keyed.append((tick + length, _ORDER_NOTE_OFF, NoteEvent(tick + length, "note_off", note)))

		tick += length
		index += 1

	if held is not None:
		keyed.append((ticks, _ORDER_NOTE_OFF, NoteEvent(ticks, "note_off", held)))

	keyed.sort(key=lambda item: (item[0], item[1]))

	return [event for _, _, event in keyed]


def chord_events (
	harmony: chordhelix.harmony.HarmonyTimeline,
	base_pitch: int = chordhelix.constants.DEFAULT_BASE_PITCH,
	velocity: int = chordhelix.constants.velocity.DEFAULT_CHORD_VELOCITY
) -> typing.List[NoteEvent]:

	"""Return one sustained triad per chord run."""

	events: typing.List[NoteEvent] = []

	for tick, chord, length in harmony.chord_runs():

		pitches = chord.pitches(base_pitch)

		events.extend(NoteEvent(tick, "note_on", pitch, velocity) for pitch in pitches)
		events.extend(NoteEvent(tick + length, "note_off", pitch) for pitch in pitches)

	# Stable sort keeps each run's note offs ahead of the next run's note ons.
	events.sort(key=lambda event: event.tick)

	return events


def _midi_velocity (velocity: int, max_velocity: int) -> int:

	"""Map a pattern velocity in 0..max_velocity onto a sounding MIDI velocity."""

	return max(1, min(MIDI_VELOCITY_MAX, round(velocity * MIDI_VELOCITY_MAX / max_velocity)))


def _to_track (
	name: str,
	channel: int,
	events: typing.Sequence[NoteEvent],
	scale: float,
	leading: typing.Sequence[mido.MetaMessage] = ()
) -> mido.MidiTrack:

	"""Convert absolute-tick note events into a track with delta times."""

	track = mido.MidiTrack()
	track.append(mido.MetaMessage('track_name', name=name, time=0))
	track.extend(leading)

	last_tick = 0

	for event in events:

		midi_tick = int(round(event.tick * scale))
		track.append(mido.Message(event.message_type, channel=channel, note=event.note, velocity=event.velocity, time=midi_tick - last_tick))
		last_tick = midi_tick

	track.append(mido.MetaMessage('end_of_track', time=0))

	return track


def write_midi_file (
	filename: str,
	harmony: chordhelix.harmony.HarmonyTimeline,
	tracks: typing.Sequence[TrackSpec],
	structure: chordhelix.structure.SongStructure,
	bpm: float = 120,
	chord_channel: int = 0,
	chord_base_pitch: int = chordhelix.constants.DEFAULT_BASE_PITCH
) -> mido.MidiFile:

	"""Write the song to a type-1 MIDI file and return the file object.

	The first track carries the tempo and the chords; every ``TrackSpec``
	gets a track of its own. Pattern velocities are relative to
	``structure.max_velocity`` and are scaled to the MIDI range.

	Parameters:
		filename: Output path.
		harmony: The rendered harmony.
		tracks: Pattern tracks to export.
		structure: Song length and resolution.
		bpm: Tempo written to the file.
		chord_channel: MIDI channel of the chord track.
		chord_base_pitch: MIDI note the chord voicings are centred on.
	"""

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = MIDI_TICKS_PER_BEAT

	scale = MIDI_TICKS_PER_BEAT / structure.ticks_per_beat

	mid.tracks.append(_to_track(
		"chords",
		chord_channel,
		chord_events(harmony, chord_base_pitch),
		scale,
		leading = [mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0)]
	))

	for spec in tracks:

		events = pattern_events(
			spec.pattern,
			structure.ticks,
			harmony = harmony,
			base_pitch = spec.base_pitch,
			follow_chords = spec.follow_chords,
			wildcards = spec.wildcards
		)

		events = [
			dataclasses.replace(event, velocity=_midi_velocity(event.velocity, structure.max_velocity))
			if event.message_type == "note_on" else event
			for event in events
		]

		mid.tracks.append(_to_track(spec.name, spec.channel, events, scale))

	logger.info(f"Writing {len(mid.tracks)} tracks to {filename}")
	mid.save(filename)

	return mid
