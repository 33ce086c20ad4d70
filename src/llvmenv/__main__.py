from llvmenv.cli import main

raise SystemExit(main())
