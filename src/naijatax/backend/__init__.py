"""Backend services for the NaijaTax API."""
