from prebyte.cli import main

raise SystemExit(main())
