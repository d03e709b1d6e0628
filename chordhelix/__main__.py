import argparse
import logging
import os
import random
import sys
import typing

import yaml

import chordhelix.constants
import chordhelix.constants.velocity
import chordhelix.exceptions
import chordhelix.harmony
import chordhelix.midi_export
import chordhelix.pattern_engines
import chordhelix.pattern_engines.crescendo
import chordhelix.pattern_engines.random_fragment
import chordhelix.structure


logger = logging.getLogger(__name__)


def load_config (config_path: str = 'song.yaml') -> dict:

	"""
	Load a song description from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def _build_structure (config: dict) -> chordhelix.structure.SongStructure:

	return chordhelix.structure.SongStructure.from_bars(
		bars = config.get('bars', 16),
		beats_per_bar = config.get('beats_per_bar', 4),
		ticks_per_beat = config.get('ticks_per_beat', chordhelix.constants.DEFAULT_TICKS_PER_BEAT),
		max_velocity = config.get('max_velocity', chordhelix.constants.velocity.MAX_VELOCITY)
	)


def _build_harmony_engine (config: dict) -> chordhelix.harmony.PatternHarmonyEngine:

	chord_patterns: typing.List[chordhelix.harmony.ChordPatternSpec] = []

	for entry in config.get('chord_patterns', []):

		if isinstance(entry, str):
			chord_patterns.append(chordhelix.harmony.ChordPatternSpec(entry))
		else:
			chord_patterns.append(chordhelix.harmony.ChordPatternSpec(
				pattern = entry['pattern'],
				minimize_chord_distance = entry.get('minimize_chord_distance'),
				crossover_pitch = entry.get('crossover_pitch')
			))

	return chordhelix.harmony.PatternHarmonyEngine(
		chord_patterns = chord_patterns,
		chord_random_tables = config.get('chord_random_tables', []),
		minimize_chord_distance = config.get('minimize_chord_distance', True),
		crossover_pitch = config.get('crossover_pitch', chordhelix.constants.DEFAULT_CROSSOVER_PITCH)
	)


def _build_string_engine (track: dict) -> chordhelix.pattern_engines.PatternEngine:

	return chordhelix.pattern_engines.StringPatternEngine(
		track['patterns'],
		ticks_per_beat = track.get('ticks_per_beat')
	)


def _build_random_fragment_engine (track: dict) -> chordhelix.pattern_engines.PatternEngine:

	return chordhelix.pattern_engines.random_fragment.RandomFragmentPatternEngine(
		pattern_string = track['pattern_string'],
		groups = track['groups'],
		pattern_ticks = track.get('pattern_ticks', 16),
		unique_pattern_parts = track.get('unique_pattern_parts', True),
		ticks_per_beat = track.get('ticks_per_beat')
	)


def _build_crescendo_engine (track: dict) -> chordhelix.pattern_engines.PatternEngine:

	return chordhelix.pattern_engines.crescendo.CrescendoPatternEngine(
		pattern = track['pattern'],
		pattern_ticks = track['pattern_ticks'],
		min_velocity = track.get('min_velocity', 1),
		max_velocity = track.get('max_velocity', chordhelix.constants.velocity.MAX_VELOCITY),
		velocity_exponent = track.get('velocity_exponent', 1.0),
		prefix_pattern = track.get('prefix_pattern'),
		suffix_pattern = track.get('suffix_pattern'),
		ticks_per_beat = track.get('ticks_per_beat'),
		prefix_ticks_per_beat = track.get('prefix_ticks_per_beat'),
		suffix_ticks_per_beat = track.get('suffix_ticks_per_beat')
	)


ENGINE_BUILDERS: typing.Dict[str, typing.Callable[[dict], chordhelix.pattern_engines.PatternEngine]] = {
	"string": _build_string_engine,
	"random_fragment": _build_random_fragment_engine,
	"crescendo": _build_crescendo_engine,
}


def build_song (config: dict, seed: int) -> typing.Tuple[chordhelix.structure.SongStructure, chordhelix.harmony.HarmonyTimeline, typing.List[chordhelix.midi_export.TrackSpec]]:

	"""Render the harmony and every track of a song description.

	The harmony and each track get their own seed, drawn from ``seed``, so the
	whole song is reproducible from that one number.

	Raises:
		ValueError: On an unknown engine name or invalid values.
		HelixError: Anything the harmony or pattern engines raise.
	"""

	structure = _build_structure(config.get('structure', {}))
	seeds = random.Random(seed)

	harmony_engine = _build_harmony_engine(config.get('harmony', {}))
	timeline = harmony_engine.render(structure, seeds.randrange(2 ** 31))

	logger.info(f"Rendered {structure.ticks} ticks in {timeline.get_chord_section_count()} chord sections")

	tracks: typing.List[chordhelix.midi_export.TrackSpec] = []

	for index, track in enumerate(config.get('tracks', [])):

		name = track.get('name', f"track {index + 1}")
		engine_name = track.get('engine', 'string')

		if engine_name not in ENGINE_BUILDERS:
			raise ValueError(f"Unknown pattern engine {engine_name!r} for track {name!r}")

		wildcards: typing.Dict[str, int] = track.get('wildcards', {})
		engine = ENGINE_BUILDERS[engine_name](track)
		pattern = engine.render(structure, seeds.randrange(2 ** 31), "".join(wildcards))

		logger.debug(f"Track {name}: {pattern}")

		tracks.append(chordhelix.midi_export.TrackSpec(
			name = name,
			channel = track.get('channel', 0),
			pattern = pattern,
			base_pitch = track.get('base_pitch', chordhelix.constants.DEFAULT_BASE_PITCH),
			wildcards = wildcards,
			follow_chords = track.get('follow_chords', True)
		))

	return structure, timeline, tracks


def main (argv: typing.Optional[typing.List[str]] = None) -> None:

	"""
	Render a song description to a MIDI file.
	"""

	parser = argparse.ArgumentParser(description="chordhelix song renderer")
	parser.add_argument("config", help="YAML song description")
	parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
	parser.add_argument("--output", default="song.mid", help="MIDI file to write (default: song.mid)")
	parser.add_argument("--bpm", type=float, default=120, help="Tempo written to the file (default: 120)")
	parser.add_argument("--verbose", action="store_true", help="Log every generation step")
	args = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	logger.info(f"Loading {args.config}")
	config = load_config(args.config)

	try:
		structure, timeline, tracks = build_song(config, args.seed)
	except (chordhelix.exceptions.HelixError, ValueError) as e:
		logger.error(f"Could not generate the song with seed {args.seed}: {e}")
		sys.exit(1)

	chordhelix.midi_export.write_midi_file(args.output, timeline, tracks, structure, bpm=args.bpm)


if __name__ == "__main__":
	main()
