"""Read-side analytics: period statistics, weekly compliance and chart payloads."""
