from scrapejob.main import run

if __name__ == "__main__":

    # Run one search job from the command line
    run()
