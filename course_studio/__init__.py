"""Course Studio: course, chapter and video management."""
