import mido
import pytest

import chordhelix.exceptions
import chordhelix.harmony
import chordhelix.midi_export
import chordhelix.pattern
import chordhelix.structure


def _pattern (text: str, wildcards: str = "") -> chordhelix.pattern.Pattern:

	return chordhelix.pattern.Pattern.parse_string(text, wildcards=wildcards)


def _harmony (pattern: str, ticks: int) -> chordhelix.harmony.HarmonyTimeline:

	engine = chordhelix.harmony.PatternHarmonyEngine([pattern])

	return engine.render(chordhelix.structure.SongStructure(ticks=ticks), seed=0)


def _summary (events: list) -> list:

	return [(event.tick, event.message_type, event.note) for event in events]


# ---------------------------------------------------------------------------
# Pattern events
# ---------------------------------------------------------------------------

def test_pattern_loops_over_song () -> None:

	"""The pattern repeats until the song ends."""

	events = chordhelix.midi_export.pattern_events(_pattern("0/2,-/2"), ticks=8)

	assert _summary(events) == [
		(0, "note_on", 60),
		(2, "note_off", 60),
		(4, "note_on", 60),
		(6, "note_off", 60),
	]


def test_last_note_is_clipped () -> None:

	"""A note running past the end of the song is released at the end."""

	events = chordhelix.midi_export.pattern_events(_pattern("0/3"), ticks=4)

	assert _summary(events) == [
		(0, "note_on", 60),
		(3, "note_off", 60),
		(3, "note_on", 60),
		(4, "note_off", 60),
	]


def test_velocity_is_kept () -> None:

	"""Note on messages carry the entry velocity."""

	events = chordhelix.midi_export.pattern_events(_pattern("0:90"), ticks=1)

	assert events[0].velocity == 90


def test_notes_follow_chord_root () -> None:

	"""Pitches are transposed by the root of the current chord."""

	harmony = _harmony("C/1,Am/1", ticks=8)
	events = chordhelix.midi_export.pattern_events(_pattern("0/4"), ticks=8, harmony=harmony)

	assert [event.note for event in events if event.message_type == "note_on"] == [60, 57]


def test_follow_chords_off () -> None:

	"""Tracks can ignore the harmony."""

	harmony = _harmony("C/1,Am/1", ticks=8)
	events = chordhelix.midi_export.pattern_events(_pattern("0/4"), ticks=8, harmony=harmony, follow_chords=False)

	assert [event.note for event in events if event.message_type == "note_on"] == [60, 60]


def test_legato_overlaps_next_note () -> None:

	"""A legato note is released just after the next note starts."""

	events = chordhelix.midi_export.pattern_events(_pattern("0~/2,4/2"), ticks=4)

	assert _summary(events) == [
		(0, "note_on", 60),
		(2, "note_on", 64),
		(2, "note_off", 60),
		(4, "note_off", 64),
	]


def test_legato_released_by_pause () -> None:

	"""A pause ends a held legato note."""

	events = chordhelix.midi_export.pattern_events(_pattern("0~/2,-/2"), ticks=4)

	assert _summary(events) == [(0, "note_on", 60), (2, "note_off", 60)]


def test_legato_released_at_song_end () -> None:

	"""A legato note still held at the end is released at the last tick."""

	events = chordhelix.midi_export.pattern_events(_pattern("0~/2"), ticks=2)

	assert _summary(events) == [(0, "note_on", 60), (2, "note_off", 60)]


def test_legato_into_same_pitch () -> None:

	"""A legato note followed by the same pitch is released before the new note starts."""

	events = chordhelix.midi_export.pattern_events(_pattern("0~,0/3"), ticks=4)

	assert _summary(events) == [
		(0, "note_on", 60),
		(1, "note_off", 60),
		(1, "note_on", 60),
		(4, "note_off", 60),
	]


def test_wildcards_resolved () -> None:

	"""Wildcards become offsets from the base pitch."""

	events = chordhelix.midi_export.pattern_events(_pattern("#/4", wildcards="#"), ticks=4, wildcards={"#": 7})

	assert events[0].note == 67


def test_unresolved_wildcard () -> None:

	"""A wildcard with no offset cannot be exported."""

	with pytest.raises(chordhelix.exceptions.PatternReferenceError):
		chordhelix.midi_export.pattern_events(_pattern("#/4", wildcards="#"), ticks=4)


def test_notes_outside_midi_range_skipped () -> None:

	"""Pitches that fall outside 0-127 are left out."""

	events = chordhelix.midi_export.pattern_events(_pattern("100/1,0/1"), ticks=2, base_pitch=60)

	assert _summary(events) == [(1, "note_on", 60), (2, "note_off", 60)]


# ---------------------------------------------------------------------------
# Chord events
# ---------------------------------------------------------------------------

def test_chord_events () -> None:

	"""Each chord run is one sustained triad."""

	harmony = _harmony("Am/2", ticks=8)
	events = chordhelix.midi_export.chord_events(harmony, velocity=80)

	assert _summary(events) == [
		(0, "note_on", 57),
		(0, "note_on", 60),
		(0, "note_on", 64),
		(8, "note_off", 57),
		(8, "note_off", 60),
		(8, "note_off", 64),
	]
	assert events[0].velocity == 80


def test_chord_events_release_before_next_chord () -> None:

	"""The previous triad is released before the next one starts."""

	harmony = _harmony("C/1,Am/1", ticks=8)
	events = chordhelix.midi_export.chord_events(harmony)

	at_four = [(event.message_type, event.note) for event in events if event.tick == 4]

	assert at_four == [
		("note_off", 60), ("note_off", 64), ("note_off", 67),
		("note_on", 57), ("note_on", 60), ("note_on", 64),
	]


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------

def test_write_midi_file (tmp_path) -> None:

	"""The written file has a chord track and one track per pattern."""

	structure = chordhelix.structure.SongStructure(ticks=16)
	harmony = _harmony("Am/2,F/2", ticks=16)

	tracks = [
		chordhelix.midi_export.TrackSpec(name="bass", channel=1, pattern=_pattern("0/2,-/2"), base_pitch=36),
		chordhelix.midi_export.TrackSpec(name="lead", channel=2, pattern=_pattern("#/4", wildcards="#"), wildcards={"#": 7}),
	]

	path = tmp_path / "song.mid"
	chordhelix.midi_export.write_midi_file(str(path), harmony, tracks, structure, bpm=120)

	mid = mido.MidiFile(str(path))

	assert mid.type == 1
	assert mid.ticks_per_beat == chordhelix.midi_export.MIDI_TICKS_PER_BEAT
	assert len(mid.tracks) == 3

	tempos = [message.tempo for message in mid.tracks[0] if message.type == "set_tempo"]
	assert tempos == [mido.bpm2tempo(120)]

	chord_ons = [message for message in mid.tracks[0] if message.type == "note_on"]
	assert len(chord_ons) == 6

	bass_ons = [message for message in mid.tracks[1] if message.type == "note_on"]
	assert len(bass_ons) == 4
	assert all(message.channel == 1 for message in bass_ons)

	lead_notes = {message.note for message in mid.tracks[2] if message.type == "note_on"}
	assert lead_notes == {64, 60}

	track_names = [message.name for track in mid.tracks for message in track if message.type == "track_name"]
	assert track_names == ["chords", "bass", "lead"]


def test_song_ticks_are_scaled (tmp_path) -> None:

	"""Song ticks are scaled to the file's resolution."""

	structure = chordhelix.structure.SongStructure(ticks=8, ticks_per_beat=4)
	harmony = _harmony("C/2", ticks=8)
	tracks = [chordhelix.midi_export.TrackSpec(name="bass", channel=0, pattern=_pattern("0/2,-/2"))]

	path = tmp_path / "song.mid"
	chordhelix.midi_export.write_midi_file(str(path), harmony, tracks, structure)

	messages = [message for message in mido.MidiFile(str(path)).tracks[1] if message.type in ("note_on", "note_off")]

	assert [message.time for message in messages] == [0, 240, 240, 240]


def test_track_channel_range () -> None:

	"""MIDI channels run from 0 to 15."""

	with pytest.raises(ValueError, match="channel"):
		chordhelix.midi_export.TrackSpec(name="bad", channel=16, pattern=_pattern("0"))


def test_velocities_scaled_to_midi_range (tmp_path) -> None:

	"""Velocities relative to a large song maximum are scaled into 1-127."""

	structure = chordhelix.structure.SongStructure(ticks=8, max_velocity=1000)
	harmony = _harmony("C/2", ticks=8)
	pattern = chordhelix.pattern.Pattern.parse_string("0/2:500,0/2,0/2:1,-/2", max_velocity=1000)
	tracks = [chordhelix.midi_export.TrackSpec(name="lead", channel=0, pattern=pattern)]

	path = tmp_path / "song.mid"
	chordhelix.midi_export.write_midi_file(str(path), harmony, tracks, structure)

	velocities = [message.velocity for message in mido.MidiFile(str(path)).tracks[1] if message.type == "note_on"]

	assert velocities == [64, 127, 1]
