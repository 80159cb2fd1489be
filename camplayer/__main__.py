import sys

from camplayer.main import main

sys.exit(main())
