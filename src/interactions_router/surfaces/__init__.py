"""Entry surfaces (HTTP, CLI) over the interactions router."""
