"""Transport Service for TripBuddy."""
