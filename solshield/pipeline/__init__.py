"""Per-file analysis pipeline and artifact writer."""
