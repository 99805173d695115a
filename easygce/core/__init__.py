"""Core — models, engine, catalog and supporting layers."""
