from hostprobe.cli import main

raise SystemExit(main())
