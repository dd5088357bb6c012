"""Tech invoice intake: email → LLM extraction → persisted record → spreadsheet mirror."""

__version__ = "0.1.0"
