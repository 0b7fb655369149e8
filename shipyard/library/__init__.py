"""Installed versions: manifests, archive extraction and the install pipeline."""