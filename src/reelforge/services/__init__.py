# Pipeline services for reelforge
