"""Q-Master queue management service."""
