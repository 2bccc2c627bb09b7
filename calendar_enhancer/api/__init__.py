"""aiohttp web layer for calendar_enhancer."""
