"""bootpipe CLI commands."""
