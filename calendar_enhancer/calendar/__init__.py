"""Streaming iCalendar rewriting core: unfolding, event rewriting, location resolution."""
