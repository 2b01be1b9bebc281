from securex.main import main

main()
