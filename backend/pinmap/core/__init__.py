"""Settings and logging configuration shared by the service and scripts."""
