"""Services: Home Assistant client, rate limiting, retries, config flows and tools."""
