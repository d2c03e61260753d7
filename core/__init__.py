"""Parameter overlay engine for paramdeck."""
