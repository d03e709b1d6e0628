"""Velocity constants.

Pattern velocities are relative to the song's maximum velocity. The default
maximum matches the MIDI range so rendered patterns can be exported without
rescaling.
"""

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127

# Chords and harmonic content in MIDI export (softer)
DEFAULT_CHORD_VELOCITY = 90
