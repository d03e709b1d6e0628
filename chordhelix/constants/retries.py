"""Retry bounds for the randomized generators.

Every constrained random search in chordhelix is bounded. Exceeding a bound
raises ``chordhelix.exceptions.GenerationError`` instead of looping forever.
"""

# Draws allowed per random chord table token before the resolution pass is discarded.
RANDOM_TABLE_RETRIES = 1000

# How many times a discarded random table resolution pass is started again.
RANDOM_TABLE_RESTARTS = 1

# Attempts to find a variation of a fragment group that has not been used yet.
VARIATION_RETRIES = 10000

# Attempts to fill a fragment pattern to exactly the requested number of ticks.
FRAGMENT_FILL_RETRIES = 100
