"""Ready-made fleets for headless runs, the CLI and the server."""
