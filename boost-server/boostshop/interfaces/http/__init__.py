"""HTTP interface: routers and request dependencies."""
