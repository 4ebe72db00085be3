"""iCalendar text decoding: field lookup, dates, recurrence rules and assembly."""
