"""Circle: a small social network backend."""
