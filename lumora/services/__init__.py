"""Domain services: issuance, quota, verification, hotspots, audit."""
