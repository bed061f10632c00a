"""HTTP gateway for the analysis job lifecycle."""
