"""Pure match logic: new-match detection and report building."""
