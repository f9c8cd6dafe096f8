from .extractor import main

raise SystemExit(main())
