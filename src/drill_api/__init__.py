"""Defense drill catalog: drills, categories, sub-categories and instructions over HTTP/JSON."""
