"""HTTP JSON boundary: error envelope, request parsing, role decorators."""
