"""Managed ROM library, slot wiring and cached asset detection."""