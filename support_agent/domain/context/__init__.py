# This module handles conversation context

# +---------------------+
# |  Checkpoint store   |   (save/load by thread id, in-memory by default)
# +---------------------+
#            |
#            v
# +---------------------+
# |   Session store     |   (append-only turns per thread)
# |---------------------|
# | User messages       |
# | Agent replies       |
# | Tool outcomes       |
# +---------------------+
#            |
#            v
#   [reasoning step sees the full history]
