import pytest

import chordhelix.chords
import chordhelix.exceptions
import chordhelix.harmony
import chordhelix.structure


def _render (pattern: str, ticks: int, ticks_per_beat: int = 4, tables: tuple = (), seed: int = 0, **kwargs) -> chordhelix.harmony.HarmonyTimeline:

	"""Render a single chord pattern."""

	engine = chordhelix.harmony.PatternHarmonyEngine([pattern], chord_random_tables=tables, **kwargs)
	structure = chordhelix.structure.SongStructure(ticks=ticks, ticks_per_beat=ticks_per_beat)

	return engine.render(structure, seed=seed)


# ---------------------------------------------------------------------------
# Stamping and merging
# ---------------------------------------------------------------------------

def test_alternating_chords_one_tick_per_beat () -> None:

	"""Am/4,F/4 at one tick per beat alternates every 4 ticks."""

	timeline = _render("Am/4,F/4", ticks=16, ticks_per_beat=1)

	assert timeline.ticks == 16
	assert timeline.get_chord(0).equals_normalized(chordhelix.chords.parse_chord("Am"))
	assert timeline.get_chord(3).equals_normalized(chordhelix.chords.parse_chord("Am"))
	assert timeline.get_chord(4).equals_normalized(chordhelix.chords.parse_chord("F"))
	assert timeline.get_chord(8).equals_normalized(chordhelix.chords.parse_chord("Am"))
	assert timeline.get_chord_ticks(0) == 4
	assert timeline.get_chord_ticks(3) == 1
	assert timeline.dump_chords() == "Am/4,F/4,Am/4,F/4"


def test_lengths_are_beats () -> None:

	"""Chord lengths are beats, converted with the song's ticks per beat."""

	timeline = _render("Am/1,F/0.5", ticks=12, ticks_per_beat=4)

	assert timeline.dump_chords() == "Am/4,F/2,Am/4,F/2"


def test_adjacent_equal_chords_merge () -> None:

	"""Adjacent runs of the same chord become one run."""

	timeline = _render("Am/1,Am/1,F/2", ticks=16)

	assert timeline.dump_chords() == "Am/8,F/8"
	assert timeline.get_chord_ticks(0) == 8
	assert timeline.get_chord_ticks(7) == 1


def test_merge_across_pattern_repeat () -> None:

	"""The last chord of one repetition merges with the first of the next."""

	timeline = _render("Am/1,F/1,Am/2", ticks=32)

	assert timeline.dump_chords() == "Am/4,F/4,Am/12,F/4,Am/8"


def test_last_chord_is_clipped () -> None:

	"""A chord running past the end of the song is cut at the last tick."""

	timeline = _render("Am/3,F/3", ticks=16)

	assert timeline.dump_chords() == "Am/12,F/4"
	assert timeline.get_chord_ticks(15) == 1


@pytest.mark.parametrize("seed", range(10))
def test_run_lengths_cover_song (seed: int) -> None:

	"""Chord runs always add up to the song length."""

	timeline = _render("Am/1,0/1,0/0.5,0!1/1.5", ticks=100, tables=("Am,F,G,C,Em,Dm",), seed=seed)

	assert sum(length for _, _, length in timeline.chord_runs()) == 100
	assert sum(1 for tick in range(100) if timeline.get_chord_ticks(tick) == 1) == len(timeline.chord_runs())


def test_out_of_range_queries () -> None:

	"""Ticks outside the song return empty values."""

	timeline = _render("Am/1", ticks=8)

	assert timeline.get_chord(-1) is None
	assert timeline.get_chord(8) is None
	assert timeline.get_chord_ticks(8) == 0
	assert timeline.get_chord_section_ticks(-1) == 0


# ---------------------------------------------------------------------------
# Chord sections
# ---------------------------------------------------------------------------

def test_sections () -> None:

	"""Plus markers split the song into chord sections."""

	timeline = _render("Am/1,F/1,+C/1,G/1", ticks=32)

	assert timeline.get_chord_section_count() == 4
	assert timeline.get_chord_section_start_ticks() == [0, 8, 16, 24]
	assert timeline.get_chord_section_string(0) == "Am/4,F/4"
	assert timeline.get_chord_section_string(8) == "C/4,G/4"
	assert timeline.get_distinct_chord_section_count() == 2
	assert timeline.get_chord_section_ticks(0) == 8
	assert timeline.get_chord_section_ticks(7) == 1
	assert timeline.get_chord_section_number(10) == 1
	assert timeline.get_chord_section_number(31) == 3
	assert timeline.get_chord_section_number(-1) == -1
	assert timeline.get_chord_section_tick(2) == 16
	assert timeline.get_chord_section_tick(9) == -1


def test_no_markers_gives_one_section_per_repeat () -> None:

	"""The first token always starts a section."""

	timeline = _render("Am/1,F/1", ticks=32)

	assert timeline.get_chord_section_start_ticks() == [0, 8, 16, 24]
	assert timeline.get_distinct_chord_section_count() == 1


def test_chord_run_spans_section_boundary () -> None:

	"""Equal chords merge across a section boundary while the sections stay apart."""

	timeline = _render("Am/1,+Am/1", ticks=8)

	assert timeline.get_chord_ticks(0) == 8
	assert timeline.get_chord_section_ticks(0) == 4
	assert timeline.get_chord_section_count() == 2
	assert timeline.get_chord_section_string(4) == "Am/4"


# ---------------------------------------------------------------------------
# Voicing
# ---------------------------------------------------------------------------

def test_minimize_chord_distance () -> None:

	"""Chords are voiced as close as possible to the first chord."""

	timeline = _render("C/1,G/1", ticks=8, crossover_pitch=11)

	assert timeline.get_chord(0).root_pitch == 0
	assert timeline.get_chord(4).root_pitch == -5


def test_minimize_override_per_pattern () -> None:

	"""A pattern can switch distance minimizing off."""

	spec = chordhelix.harmony.ChordPatternSpec("C/1,G/1", minimize_chord_distance=False)
	timeline = _render(spec, ticks=8, crossover_pitch=11)

	assert timeline.get_chord(4).root_pitch == 7


def test_crossover_override_per_pattern () -> None:

	"""A pattern can set its own crossover pitch."""

	spec = chordhelix.harmony.ChordPatternSpec("Am/1", crossover_pitch=11)
	timeline = _render(spec, ticks=4)

	assert timeline.get_chord(0).root_pitch == 9


# ---------------------------------------------------------------------------
# Resolution of references and random tables
# ---------------------------------------------------------------------------

def test_backreferences () -> None:

	"""$N repeats the chord at position N."""

	timeline = _render("Am/1,F/1,$0/1,$1/1", ticks=16)

	assert timeline.dump_chords() == "Am/4,F/4,Am/4,F/4"


@pytest.mark.parametrize("pattern", ["$0/1", "Am/1,$2/1", "Am/1,$1/1"])
def test_invalid_backreference (pattern: str) -> None:

	"""Backreferences must point at an earlier position."""

	with pytest.raises(chordhelix.exceptions.PatternReferenceError, match="backreference"):
		_render(pattern, ticks=8)


@pytest.mark.parametrize("seed", range(30))
def test_exclusion_never_redraws_excluded_chord (seed: int) -> None:

	"""0!0 never draws the chord at position 0."""

	timeline = _render("Am/1,0!0/1", ticks=8, tables=(["Am", "F", "G"],), seed=seed)

	assert not timeline.get_chord(4).equals_normalized(chordhelix.chords.parse_chord("Am"))


@pytest.mark.parametrize("seed", range(30))
def test_exclusions_are_combined (seed: int) -> None:

	"""The previous chord and the excluded position are both ruled out."""

	timeline = _render("Am/1,F/1,0!0/1,C/1", ticks=16, tables=("Am,F,G",), seed=seed)

	assert timeline.get_chord(8).equals_normalized(chordhelix.chords.parse_chord("G"))


@pytest.mark.parametrize("seed", range(30))
def test_last_token_differs_from_first (seed: int) -> None:

	"""A random chord at the end of the pattern never repeats the first chord."""

	timeline = _render("Am/1,C/1,0/1", ticks=12, tables=("Am,C,G",), seed=seed)

	assert timeline.get_chord(8).equals_normalized(chordhelix.chords.parse_chord("G"))


def test_random_draws_are_deterministic () -> None:

	"""The same seed renders the same harmony."""

	tables = ("Am,F,G,C,Em,Dm",)
	pattern = "Am/1,0/1,0/1,0!1/1,+0/1,$1/1,0/2"

	first = _render(pattern, ticks=128, tables=tables, seed=1234)
	second = _render(pattern, ticks=128, tables=tables, seed=1234)

	assert first.dump_chords() == second.dump_chords()
	assert first.chords == second.chords


def test_pattern_choice_is_deterministic () -> None:

	"""The seed also decides which of several patterns is used."""

	engine = chordhelix.harmony.PatternHarmonyEngine(["Am/1,F/1", "C/1,G/1", "Dm/1,Em/1"])
	structure = chordhelix.structure.SongStructure(ticks=16)

	for seed in range(10):
		assert engine.render(structure, seed).dump_chords() == engine.render(structure, seed).dump_chords()


def test_exhausted_draws_raise () -> None:

	"""A table that can never satisfy its exclusions fails after one restart."""

	with pytest.raises(chordhelix.exceptions.GenerationError, match="Could not resolve"):
		_render("Am/1,0/1", ticks=8, tables=("Am",))


def test_missing_table () -> None:

	"""Referencing a table that does not exist is a reference error."""

	with pytest.raises(chordhelix.exceptions.PatternReferenceError, match="table 1"):
		_render("Am/1,1/1", ticks=8, tables=("Am,F",))


def test_exclusion_position_out_of_range () -> None:

	"""The excluded position must already be resolved."""

	with pytest.raises(chordhelix.exceptions.PatternReferenceError, match="exclusion"):
		_render("Am/1,0!5/1", ticks=8, tables=("Am,F",))


@pytest.mark.parametrize("pattern", ["Am", "Am/x", "Am/1/2", "0x/1", "Hm/1", "Am/0", "Am/inf", "Am/nan", "Am/1e308"])
def test_malformed_tokens (pattern: str) -> None:

	"""Malformed chord pattern tokens are parse errors."""

	with pytest.raises(chordhelix.exceptions.ParseError):
		_render(pattern, ticks=8, tables=("Am,F",))


# ---------------------------------------------------------------------------
# Configuration objects
# ---------------------------------------------------------------------------

def test_random_table_parse () -> None:

	"""Tables parse from comma-separated chord names."""

	table = chordhelix.harmony.ChordRandomTable.parse("Am, F,G")

	assert table.chords == ("Am", "F", "G")
	assert len(table) == 3
	assert table[1] == "F"


def test_random_table_validation () -> None:

	"""Tables must be non-empty lists of valid chord names."""

	with pytest.raises(chordhelix.exceptions.ParseError):
		chordhelix.harmony.ChordRandomTable(())

	with pytest.raises(chordhelix.exceptions.ParseError):
		chordhelix.harmony.ChordRandomTable.parse("Am,X")


def test_engine_requires_patterns () -> None:

	"""An engine without chord patterns is rejected."""

	with pytest.raises(ValueError, match="at least one chord pattern"):
		chordhelix.harmony.PatternHarmonyEngine([])


# ---------------------------------------------------------------------------
# Sanity check
# ---------------------------------------------------------------------------

def test_check_sanity_unchanged_chord () -> None:

	"""A run that ends must be followed by a different chord."""

	am = chordhelix.chords.parse_chord("Am")
	timeline = chordhelix.harmony.HarmonyTimeline([am, am], [1, 1], [2, 1])

	with pytest.raises(chordhelix.exceptions.GenerationError, match="not changed"):
		timeline.check_sanity()


def test_check_sanity_counter_not_decremented () -> None:

	"""Chord ticks must count down by one."""

	am = chordhelix.chords.parse_chord("Am")
	timeline = chordhelix.harmony.HarmonyTimeline([am, am], [2, 2], [2, 1])

	with pytest.raises(chordhelix.exceptions.GenerationError, match="not decremented"):
		timeline.check_sanity()


def test_check_sanity_unexpected_change () -> None:

	"""Chords only change where a run ends."""

	am = chordhelix.chords.parse_chord("Am")
	f = chordhelix.chords.parse_chord("F")
	timeline = chordhelix.harmony.HarmonyTimeline([am, f], [2, 1], [2, 1])

	with pytest.raises(chordhelix.exceptions.GenerationError, match="unexpectedly"):
		timeline.check_sanity()
