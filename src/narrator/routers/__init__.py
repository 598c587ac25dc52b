"""HTTP routers for the narration API."""
