import pathlib
import typing

import pytest
import yaml


SONG_CONFIG: typing.Dict[str, typing.Any] = {
	"structure": {"bars": 8, "beats_per_bar": 4, "ticks_per_beat": 4, "max_velocity": 127},
	"harmony": {
		"minimize_chord_distance": True,
		"crossover_pitch": 2,
		"chord_patterns": [
			"Am/4,F/4,0/4,0!1/4",
			{"pattern": "C/8,G/8", "minimize_chord_distance": False, "crossover_pitch": 4},
		],
		"chord_random_tables": ["Am,F,G,C,Em,Dm"],
	},
	"tracks": [
		{"name": "bass", "channel": 1, "base_pitch": 36, "engine": "string", "patterns": ["0/2,-/2", "(0,-)*2,7/2,-/2"]},
		{
			"name": "lead",
			"channel": 2,
			"engine": "random_fragment",
			"pattern_ticks": 16,
			"pattern_string": "A1,A2,A1,B1",
			"unique_pattern_parts": True,
			"groups": {"A": "0,-|1,-,2,-|#/2", "B": "0/2|-/2"},
			"wildcards": {"#": 7},
		},
		{
			"name": "hats",
			"channel": 9,
			"engine": "crescendo",
			"pattern_ticks": 64,
			"pattern": "0,-",
			"min_velocity": 20,
			"max_velocity": 127,
			"velocity_exponent": 2,
			"follow_chords": False,
			"base_pitch": 42,
		},
	],
}


@pytest.fixture
def song_config () -> typing.Dict[str, typing.Any]:

	"""A song description using every pattern engine."""

	return SONG_CONFIG


@pytest.fixture
def config_file (tmp_path: pathlib.Path) -> pathlib.Path:

	"""The song description written to a YAML file."""

	path = tmp_path / "song.yaml"
	path.write_text(yaml.safe_dump(SONG_CONFIG))

	return path
