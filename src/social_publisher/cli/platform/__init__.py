"""Platform capability and content validation commands."""
