"""Quiz domain services: question pool, registries, timers and the game controller."""
