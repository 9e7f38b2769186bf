from kmhd2spotify.cli import main

main()
