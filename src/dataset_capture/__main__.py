from dataset_capture.capture_dataset import main


if __name__ == "__main__":
    raise SystemExit(main())
