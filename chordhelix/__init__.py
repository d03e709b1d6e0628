"""
chordhelix - seeded chord progressions and note patterns from compact text.

A song is described with a handful of small string languages and rendered
into tick-indexed data. Every random decision comes from an explicit seed,
so the same description and seed always produce the same song.

- **Chord patterns.** ``"Am/4,F/4,0/4,0!1/4,+$0/4,$1/4"`` - literal chords,
  draws from random chord tables with exclusions, backreferences and ``+``
  section markers. Rendered into a ``HarmonyTimeline`` that answers "which
  chord is playing at tick N, and for how much longer".
- **Note patterns.** ``"0/3,-/5,7~/2:90"`` - pitches, pauses, legato,
  velocities and wildcard pitches, with ``(0,-)*4`` repetition shorthand.
- **Pattern engines.** Literal strings, patterns assembled from random
  fragments (``A1,A2,A1,B1``), and crescendos shaped along a power curve.
- **MIDI export.** Write the rendered harmony and patterns to a standard
  MIDI file.

Minimal example:

    ```python
    import chordhelix

    structure = chordhelix.SongStructure.from_bars(8)

    harmony = chordhelix.PatternHarmonyEngine(
        chord_patterns = ["Am/4,F/4,0/4,0!1/4"],
        chord_random_tables = ["Am,F,G,C,Em,Dm"]
    ).render(structure, seed=1)

    bass = chordhelix.StringPatternEngine("0/2,-/2").render(structure, seed=1)
    ```

From the command line, ``python -m chordhelix song.yaml --seed 7 --output song.mid``.

Package-level exports: ``SongStructure``, ``PatternHarmonyEngine``, ``Pattern``,
``StringPatternEngine``, ``RandomFragmentPatternEngine``, ``CrescendoPatternEngine``.
"""

import chordhelix.harmony
import chordhelix.pattern
import chordhelix.pattern_engines
import chordhelix.pattern_engines.crescendo
import chordhelix.pattern_engines.random_fragment
import chordhelix.structure


SongStructure = chordhelix.structure.SongStructure
PatternHarmonyEngine = chordhelix.harmony.PatternHarmonyEngine
Pattern = chordhelix.pattern.Pattern
StringPatternEngine = chordhelix.pattern_engines.StringPatternEngine
RandomFragmentPatternEngine = chordhelix.pattern_engines.random_fragment.RandomFragmentPatternEngine
CrescendoPatternEngine = chordhelix.pattern_engines.crescendo.CrescendoPatternEngine
