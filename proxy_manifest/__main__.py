from proxy_manifest.cli.manifest_runner import main

if __name__ == "__main__":
    raise SystemExit(main())
