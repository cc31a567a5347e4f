"""Background QThread workers."""
