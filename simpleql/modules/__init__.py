"""SimpleQL modules. Each one is a black box behind its package interface."""
