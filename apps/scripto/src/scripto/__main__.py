from scripto.cli import main

main()
