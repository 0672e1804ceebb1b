"""triage_server — FastAPI REST surface for the triage queue and self-assessment."""
