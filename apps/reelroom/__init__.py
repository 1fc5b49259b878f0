"""Reelroom: real-time chat rooms for film-production projects."""
