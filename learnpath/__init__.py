"""learnpath: course progression and quiz attempts for a learning platform."""
