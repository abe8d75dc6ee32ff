"""HTTP routers for the helpdesk API."""
