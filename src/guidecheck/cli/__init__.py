"""guidecheck command-line interface."""
