"""Bot scripts: branch and middleware registrations loaded at start-up."""
