from spotify_ssh.cli import main


if __name__ == "__main__":
    main()
