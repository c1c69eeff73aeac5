"""REST API for prospects and listings."""
