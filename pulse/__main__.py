from pulse.main import main

main()
