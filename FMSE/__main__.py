from FMSE.SGM.render import main

if __name__ == "__main__":
    main()
