import os
import sys

# Settings are read at import time; tests never touch Firestore.
os.environ["USE_MEMORY_STORE"] = "true"

sys.path.insert(0, os.path.dirname(__file__))
