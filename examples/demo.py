import logging

import chordhelix
import chordhelix.midi_export

logging.basicConfig(level=logging.DEBUG)

SEED = 42

structure = chordhelix.SongStructure.from_bars(16)

# Two bars of Am, then random chords: the fourth one differs from whatever came second.
harmony = chordhelix.PatternHarmonyEngine(
	chord_patterns = ["Am/8,0/4,0/4,0!1/4,+$0/4,$1/4,0/4"],
	chord_random_tables = ["Am,F,G,C,Em,Dm"]
).render(structure, seed=SEED)

logging.info(f"Chords: {harmony.dump_chords()}")

bass = chordhelix.StringPatternEngine(["0/2,-/2", "(0,-)*2,7/2,-/2"]).render(structure, seed=SEED + 1)

lead = chordhelix.RandomFragmentPatternEngine(
	"A1,A2,A1,B1",
	{"A": "0,-|1,-,2,-|4~/2,5/2", "B": "0/2|-/2"},
	pattern_ticks = 16
).render(structure, seed=SEED + 2)

# A four-bar snare roll that gets louder towards the end.
roll = chordhelix.CrescendoPatternEngine(
	pattern = "0",
	pattern_ticks = 64,
	min_velocity = 10,
	max_velocity = 127,
	velocity_exponent = 2
).render(structure, seed=SEED + 3)

chordhelix.midi_export.write_midi_file(
	"demo.mid",
	harmony,
	[
		chordhelix.midi_export.TrackSpec(name="bass", channel=1, pattern=bass, base_pitch=36),
		chordhelix.midi_export.TrackSpec(name="lead", channel=2, pattern=lead),
		chordhelix.midi_export.TrackSpec(name="snare", channel=9, pattern=roll, base_pitch=38, follow_chords=False),
	],
	structure,
	bpm = 124
)
