"""Budget periods and their categories."""
