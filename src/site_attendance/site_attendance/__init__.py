"""Site attendance: daily worker check-in per construction site, reports and imports."""
