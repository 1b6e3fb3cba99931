"""RefWriter command line interface."""
