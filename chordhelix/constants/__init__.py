"""Constants for chordhelix.

This package contains two sets of constants:

- ``chordhelix.constants.velocity`` - Velocity bounds and defaults
- ``chordhelix.constants.retries`` - Retry bounds for the randomized generators

Timing and chord defaults used across the package are defined here directly.
"""

# Ticks per beat used when a song does not specify its own resolution.
DEFAULT_TICKS_PER_BEAT = 4

# Chord roots with a pitch class above this value are voiced one octave down,
# so that C, C# and D sit at 0..2 and every other root sits at -9..-1.
DEFAULT_CROSSOVER_PITCH = 2

# MIDI pitch the chord voicings and pattern offsets are centred on.
DEFAULT_BASE_PITCH = 60
