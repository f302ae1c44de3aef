"""Student course enrollment API."""
