"""Restaurant discovery backend: dataset importer and HTTP API."""
