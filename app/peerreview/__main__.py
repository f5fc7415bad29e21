import sys

from app.peerreview.main import main

sys.exit(main())
