"""Local document store standing in for the hosted real-time database."""
