"""CLI command implementations (imported lazily by autover.cli)."""
