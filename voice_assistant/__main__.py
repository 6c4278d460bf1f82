import sys

from voice_assistant.main import main

sys.exit(main())
