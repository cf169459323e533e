import sys

from photo_gallery.main import main

sys.exit(main())
