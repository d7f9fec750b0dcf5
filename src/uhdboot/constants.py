import pathlib

os_release_path = pathlib.Path("/etc/os-release")

debug_env_var = "UHDBOOT_DEBUG"

# Keeps apt and debconf from prompting
noninteractive_env = {"DEBIAN_FRONTEND": "noninteractive"}

uhd_repo_url = "https://github.com/EttusResearch/uhd.git"

remote_probe_timeout = 10
