"""HubSpot bulk property uploader: CSV normalization and upload gateway."""

__version__ = "0.1.0"
