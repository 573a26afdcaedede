"""HTTP routes: operational endpoints plus the catch-all upstream relay."""
