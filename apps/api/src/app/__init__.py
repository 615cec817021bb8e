"""Training Signups API."""
