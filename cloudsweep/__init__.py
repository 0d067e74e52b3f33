"""Find and delete stale cloud resources by age, region, tags and name rules."""

__version__ = "0.1.0"