"""Infrastructure shared by icalkit: timezones, HTTP, async helpers, config, logging."""
