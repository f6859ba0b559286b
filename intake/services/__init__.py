"""Storage and retrieval services for submissions and their attachments."""
