from loguru import logger

from GENERAL.errors import AppError, ConfigLoadError, UserAbend


def main() -> int:
    from DEPLOY_APP.CONFIG import config_CLI
    from DEPLOY_APP.CONFIG.config import DeployConfig
    from DEPLOY_APP.APP import controller
    from DEPLOY_APP.APP.SERVICES import registry
    from DEPLOY_APP.APP.SERVICES.build_diff import BuildDiffService
    from DEPLOY_APP.APP.SERVICES.state_service import StateService
    from GENERAL import loadconfig, setup_loguru

    try:
        args = config_CLI.parse_args()
        overrides = {"target": args.target} if args.target else None
        config = loadconfig.load_config(args.config, DeployConfig, overrides)
        setup_loguru.setup_loguru(config.logging)

        task = registry.select(
            config.target,
            message=config.message,
            timeout=config.connect_timeout_sec,
            blocksize=config.upload_blocksize,
            strict_host_keys=config.strict_host_keys,
            mtime_tolerance=config.mtime_tolerance_sec,
        )

        deploy_controller = controller.DeployController(
            build_dir=config.build_dir,
            task=task,
            diff_supplier=BuildDiffService(),
            state_store=StateService(config.state_file_path),
            full=args.full,
        )
        return deploy_controller.run()

    except ConfigLoadError as e:
        logger.error("Ошибка при загрузке параметров\n{}", e)
        return 2
    except KeyboardInterrupt:
        logger.error(UserAbend.log_message)
        return UserAbend.exit_code
    except AppError as e:
        logger.error("{}:\n{}", e.log_message, e)
        return e.exit_code
    except Exception:
        logger.exception("Неизвестная ошибка")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
