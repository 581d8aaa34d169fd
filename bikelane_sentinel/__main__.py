from bikelane_sentinel.main import main

main()
