from choomd.app import main

main()
