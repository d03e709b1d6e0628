"""Exception types raised by chordhelix.

- ``ParseError``: a chord name or mini-language token is malformed.
- ``PatternReferenceError``: a backreference, random table, exclusion position
  or fragment group points at something that does not exist (or a group is
  defined twice).
- ``GenerationError``: a bounded random search ran out of attempts, or a
  generated result failed its consistency checks.

All three derive from ``HelixError``. ``ParseError`` is also a ``ValueError``
and ``PatternReferenceError`` a ``LookupError`` so callers that only know the
builtin hierarchy still catch them.
"""


class HelixError (Exception):
	pass


class ParseError (HelixError, ValueError):
	pass


class PatternReferenceError (HelixError, LookupError):
	pass


class GenerationError (HelixError, RuntimeError):
	pass
