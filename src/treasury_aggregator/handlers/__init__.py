"""HTTP endpoint handlers, one module per endpoint."""
