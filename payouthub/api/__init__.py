"""Public HTTP API for the billing backend."""
