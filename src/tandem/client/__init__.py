"""Client-side front ends for a relayed session."""
